"""Points rules: accrual arithmetic and the fixed reward tiers."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.db import models
from django.utils.translation import gettext_lazy as _

from pointsman.exceptions import ErrorCode, PointsmanError

# 5 points per full 100 of currency spent
AMOUNT_PER_BLOCK = Decimal("100")
POINTS_PER_BLOCK = 5

# Largest amount a Purchase row can hold (DecimalField(12, 2))
MAX_PURCHASE_AMOUNT = Decimal("9999999999.99")


class RewardTier(models.TextChoices):
    """Redeemable reward tiers."""

    SMALL = "small", _("0.5 kg")
    LARGE = "large", _("0.75 kg")


@dataclass(frozen=True)
class TierRule:
    """Cost and reward of a tier."""

    tier: str
    points: int
    reward_kg: Decimal


TIER_RULES = {
    RewardTier.SMALL: TierRule(RewardTier.SMALL, 100, Decimal("0.5")),
    RewardTier.LARGE: TierRule(RewardTier.LARGE, 180, Decimal("0.75")),
}


def clean_amount(amount) -> Decimal:
    """
    Coerce a currency amount to Decimal.

    Accepts int, Decimal, float and numeric strings with at most two
    decimal places. Zero is allowed here; callers that need a strictly
    positive amount check it themselves.

    Raises:
        PointsmanError: INVALID_AMOUNT
    """
    if isinstance(amount, bool) or amount is None:
        raise PointsmanError(ErrorCode.INVALID_AMOUNT, amount=repr(amount))

    try:
        value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise PointsmanError(ErrorCode.INVALID_AMOUNT, amount=repr(amount))

    if not value.is_finite() or value < 0:
        raise PointsmanError(ErrorCode.INVALID_AMOUNT, amount=str(amount))

    if not _within_cents(value):
        raise PointsmanError(
            ErrorCode.INVALID_AMOUNT,
            message="Amounts are limited to two decimal places.",
            amount=str(amount),
        )

    return value


def _within_cents(value: Decimal) -> bool:
    """No non-zero digit past the second decimal place. Exact at any size."""
    _sign, digits, exponent = value.as_tuple()
    if exponent >= -2:
        return True
    return not any(digits[exponent + 2 :])


def compute_points(amount) -> int:
    """
    Points earned for a purchase: floor(amount / 100) * 5.

    Defined for every non-negative amount, however large.

    Raises:
        PointsmanError: INVALID_AMOUNT for negative or non-numeric amounts
    """
    value = clean_amount(amount)
    # int() truncates exactly; value is non-negative so this is floor
    return int(value) // int(AMOUNT_PER_BLOCK) * POINTS_PER_BLOCK


def get_tier_rule(tier: str) -> TierRule:
    """
    Look up a reward tier.

    Raises:
        PointsmanError: INVALID_TIER
    """
    if tier not in RewardTier.values:
        raise PointsmanError(
            ErrorCode.INVALID_TIER,
            tier=tier,
            allowed=list(RewardTier.values),
        )
    return TIER_RULES[RewardTier(tier)]
