"""
Pointsman public API.

CORE (ledger):
    LedgerService.compute_points(amount)          - Points for a purchase amount
    LedgerService.award_points(phone, amount)     - Record purchase, add points
    LedgerService.redeem_points(phone, tier)      - Spend points on a reward tier
    LedgerService.compute_statistics()            - Totals across the ledger

CONVENIENCE (reads):
    LedgerService.get_customer(phone)             - Customer snapshot
    LedgerService.get_balance(phone)              - Current points
    LedgerService.get_purchases(phone)            - Purchase history
    LedgerService.get_redemptions(phone)          - Redemption history
    LedgerService.audit_balances()                - Balance vs audit trail

Every call except compute_points and audit_balances takes the caller's
Principal as the keyword-only ``principal`` argument.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from pointsman import rules
from pointsman.adapters import get_store
from pointsman.conf import pointsman_settings
from pointsman.exceptions import ErrorCode, PointsmanError
from pointsman.gates import Gates
from pointsman.identity import Principal
from pointsman.models import Purchase, Redemption
from pointsman.protocols.store import (
    CUSTOMERS,
    PURCHASES,
    REDEMPTIONS,
    CustomerRecord,
    PurchaseRecord,
    RedemptionRecord,
)
from pointsman.signals import points_awarded, points_redeemed
from pointsman.utils import clean_phone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AwardResult:
    """Outcome of award_points."""

    new_balance: int
    points_earned: int
    purchase_id: str


@dataclass(frozen=True)
class RedeemResult:
    """Outcome of redeem_points."""

    new_balance: int
    points_spent: int
    tier: str
    reward_kg: Decimal
    redemption_id: str


@dataclass(frozen=True)
class LedgerStatistics:
    """Dashboard totals."""

    total_customers: int
    total_purchases: int
    total_redemptions: int
    total_revenue: Decimal
    total_points_earned: int
    total_points_redeemed: int
    active_points: int


@dataclass(frozen=True)
class BalanceDiscrepancy:
    """A customer whose stored balance disagrees with its audit trail."""

    phone: str
    recorded: int
    expected: int


class LedgerService:
    """
    Points ledger.

    Uses @classmethod for extensibility (consistent with the other services).
    Balance mutations run in a single store transaction that also appends
    the audit record, so the balance and the trail commit together.
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def compute_points(cls, amount) -> int:
        """
        Points earned for a purchase amount: floor(amount / 100) * 5.

        Raises:
            PointsmanError: INVALID_AMOUNT for negative or non-numeric amounts
        """
        return rules.compute_points(amount)

    @classmethod
    def award_points(cls, phone: str, amount, *, principal: Principal) -> AwardResult:
        """
        Record a purchase and credit its points.

        Args:
            phone: Customer phone (normalized here)
            amount: Purchase amount, positive, at most two decimal places
            principal: Caller; must be an admin

        Returns:
            AwardResult with the committed balance

        Raises:
            PointsmanError: UNAUTHENTICATED, PERMISSION_DENIED, INVALID_PHONE,
                INVALID_AMOUNT, CUSTOMER_NOT_FOUND, TRANSACTION_CONFLICT,
                STORE_UNAVAILABLE
        """
        Gates.admin_access(principal)
        phone = clean_phone(phone)
        value = rules.clean_amount(amount)
        if value <= 0 or value > rules.MAX_PURCHASE_AMOUNT:
            raise PointsmanError(ErrorCode.INVALID_AMOUNT, amount=str(amount))
        points_earned = rules.compute_points(value)

        def write(txn) -> AwardResult:
            customer = cls._require_customer(txn, phone)
            new_balance = customer.points + points_earned
            txn.update_points(phone, new_balance)
            purchase_id = txn.append_record(
                PURCHASES,
                {
                    "customer_phone": phone,
                    "amount": value,
                    "points_earned": points_earned,
                    "created_by": principal.uid,
                },
            )
            return AwardResult(new_balance, points_earned, purchase_id)

        result = cls._run_transaction(phone, write)

        logger.info(
            "Awarded %d points to %s for %s (balance %d)",
            points_earned,
            phone,
            value,
            result.new_balance,
        )
        points_awarded.send(
            sender=Purchase,
            phone=phone,
            points_earned=points_earned,
            new_balance=result.new_balance,
            purchase_id=result.purchase_id,
        )
        return result

    @classmethod
    def redeem_points(cls, phone: str, tier: str, *, principal: Principal) -> RedeemResult:
        """
        Spend points on a reward tier.

        The balance check and the deduction happen in the same transaction,
        so concurrent redemptions cannot both pass against a stale balance.

        Args:
            phone: Customer phone (normalized here)
            tier: "small" (100 pts, 0.5 kg) or "large" (180 pts, 0.75 kg)
            principal: Caller; must be an admin

        Returns:
            RedeemResult with the committed balance

        Raises:
            PointsmanError: UNAUTHENTICATED, PERMISSION_DENIED, INVALID_PHONE,
                INVALID_TIER, CUSTOMER_NOT_FOUND, INSUFFICIENT_POINTS,
                TRANSACTION_CONFLICT, STORE_UNAVAILABLE
        """
        Gates.admin_access(principal)
        phone = clean_phone(phone)
        rule = rules.get_tier_rule(tier)

        def write(txn) -> RedeemResult:
            customer = cls._require_customer(txn, phone)
            if customer.points < rule.points:
                raise PointsmanError(
                    ErrorCode.INSUFFICIENT_POINTS,
                    available=customer.points,
                    requested=rule.points,
                )
            new_balance = customer.points - rule.points
            txn.update_points(phone, new_balance)
            redemption_id = txn.append_record(
                REDEMPTIONS,
                {
                    "customer_phone": phone,
                    "tier": rule.tier.value,
                    "points_spent": rule.points,
                    "reward_kg": rule.reward_kg,
                    "created_by": principal.uid,
                },
            )
            return RedeemResult(
                new_balance,
                rule.points,
                rule.tier.value,
                rule.reward_kg,
                redemption_id,
            )

        result = cls._run_transaction(phone, write)

        logger.info(
            "Redeemed %d points (%s) for %s (balance %d)",
            rule.points,
            rule.tier.value,
            phone,
            result.new_balance,
        )
        points_redeemed.send(
            sender=Redemption,
            phone=phone,
            tier=result.tier,
            points_spent=result.points_spent,
            new_balance=result.new_balance,
            redemption_id=result.redemption_id,
        )
        return result

    @classmethod
    def compute_statistics(cls, *, principal: Principal) -> LedgerStatistics:
        """
        Fold the whole audit trail into dashboard totals.

        Read-only. active_points = total_points_earned - total_points_redeemed.

        Raises:
            PointsmanError: UNAUTHENTICATED, PERMISSION_DENIED, STORE_UNAVAILABLE
        """
        Gates.admin_access(principal)
        store = get_store()

        total_purchases = 0
        total_revenue = Decimal("0")
        total_points_earned = 0
        for purchase in store.stream(PURCHASES):
            total_purchases += 1
            total_revenue += purchase.amount
            total_points_earned += purchase.points_earned

        total_redemptions = 0
        total_points_redeemed = 0
        for redemption in store.stream(REDEMPTIONS):
            total_redemptions += 1
            total_points_redeemed += redemption.points_spent

        return LedgerStatistics(
            total_customers=store.count(CUSTOMERS),
            total_purchases=total_purchases,
            total_redemptions=total_redemptions,
            total_revenue=total_revenue,
            total_points_earned=total_points_earned,
            total_points_redeemed=total_points_redeemed,
            active_points=total_points_earned - total_points_redeemed,
        )

    # ======================================================================
    # CONVENIENCE API
    # ======================================================================

    @classmethod
    def get_customer(cls, phone: str, *, principal: Principal) -> CustomerRecord:
        """
        Get a customer snapshot (owner or admin).

        Raises:
            PointsmanError: INVALID_PHONE, UNAUTHENTICATED, PERMISSION_DENIED,
                CUSTOMER_NOT_FOUND
        """
        phone = clean_phone(phone)
        Gates.customer_access(principal, phone)
        customer = get_store().get_customer(phone)
        if customer is None:
            raise PointsmanError(ErrorCode.CUSTOMER_NOT_FOUND, phone=phone)
        return customer

    @classmethod
    def get_balance(cls, phone: str, *, principal: Principal) -> int:
        """Current points balance (owner or admin)."""
        return cls.get_customer(phone, principal=principal).points

    @classmethod
    def get_purchases(
        cls,
        phone: str,
        limit: int | None = None,
        *,
        principal: Principal,
    ) -> list[PurchaseRecord]:
        """Purchase history, most recent first (owner or admin)."""
        return cls._history(PURCHASES, phone, limit, principal)

    @classmethod
    def get_redemptions(
        cls,
        phone: str,
        limit: int | None = None,
        *,
        principal: Principal,
    ) -> list[RedemptionRecord]:
        """Redemption history, most recent first (owner or admin)."""
        return cls._history(REDEMPTIONS, phone, limit, principal)

    @classmethod
    def audit_balances(cls) -> list[BalanceDiscrepancy]:
        """
        Recompute every balance from the audit trail.

        Operator tool (management command); not gated.

        Returns:
            Customers whose stored points differ from
            sum(points_earned) - sum(points_spent). Empty when consistent.
        """
        store = get_store()
        expected: dict[str, int] = defaultdict(int)
        for purchase in store.stream(PURCHASES):
            expected[purchase.customer_phone] += purchase.points_earned
        for redemption in store.stream(REDEMPTIONS):
            expected[redemption.customer_phone] -= redemption.points_spent

        discrepancies = []
        for customer in store.stream(CUSTOMERS):
            if customer.points != expected[customer.phone]:
                discrepancies.append(
                    BalanceDiscrepancy(
                        phone=customer.phone,
                        recorded=customer.points,
                        expected=expected[customer.phone],
                    )
                )
        return discrepancies

    # ======================================================================
    # Internals
    # ======================================================================

    @classmethod
    def _history(cls, collection: str, phone: str, limit: int | None, principal: Principal):
        phone = clean_phone(phone)
        Gates.customer_access(principal, phone)
        if limit is None:
            limit = pointsman_settings.HISTORY_LIMIT
        return get_store().query_by_field(
            collection,
            "customer_phone",
            phone,
            order_by="-created_at",
            limit=limit,
        )

    @classmethod
    def _require_customer(cls, txn, phone: str) -> CustomerRecord:
        customer = txn.get_customer(phone)
        if customer is None:
            raise PointsmanError(ErrorCode.CUSTOMER_NOT_FOUND, phone=phone)
        return customer

    @classmethod
    def _run_transaction(cls, phone: str, write_fn):
        """
        Run write_fn in a store transaction over one customer.

        TRANSACTION_CONFLICT is retried CONFLICT_RETRIES more times. Each
        attempt re-reads the balance, so a delta is applied at most once.
        Every other error propagates unchanged.
        """
        store = get_store()
        retries = pointsman_settings.CONFLICT_RETRIES
        attempt = 0
        while True:
            try:
                return store.run_transaction([phone], write_fn)
            except PointsmanError as exc:
                if exc.code != ErrorCode.TRANSACTION_CONFLICT or attempt >= retries:
                    raise
                attempt += 1
                logger.warning(
                    "Ledger transaction for %s conflicted; retry %d/%d",
                    phone,
                    attempt,
                    retries,
                )
