"""Tests for LedgerService: awarding, redeeming, statistics and reads."""

from decimal import Decimal

import pytest

from pointsman.exceptions import ErrorCode, PointsmanError
from pointsman.identity import ANONYMOUS, Principal
from pointsman.models import Customer, Purchase, Redemption
from pointsman.service import LedgerService
from pointsman.signals import points_awarded, points_redeemed

pytestmark = pytest.mark.django_db

PHONE = "+15551234567"
OTHER_PHONE = "+15557654321"


def _set_points(phone, points):
    """Force a balance without an audit record."""
    Customer.objects.filter(phone=phone).update(points=points)


# ═══════════════════════════════════════════════════════════════════
# award_points
# ═══════════════════════════════════════════════════════════════════


class TestAwardPoints:
    def test_award_credits_points_and_records_purchase(self, customer, admin):
        result = LedgerService.award_points(customer.phone, 250, principal=admin)

        assert result.points_earned == 10
        assert result.new_balance == 10
        assert Customer.objects.get(phone=PHONE).points == 10

        purchase = Purchase.objects.get(pk=result.purchase_id)
        assert purchase.amount == Decimal("250.00")
        assert purchase.points_earned == 10
        assert purchase.created_by == admin.uid

    def test_award_accumulates(self, funded, admin):
        result = LedgerService.award_points(PHONE, "120.50", principal=admin)
        assert result.new_balance == 255

    def test_small_purchase_records_zero_points(self, customer, admin):
        result = LedgerService.award_points(PHONE, 99, principal=admin)
        assert result.points_earned == 0
        assert result.new_balance == 0
        assert Purchase.objects.filter(customer_id=PHONE).count() == 1

    def test_phone_is_normalized(self, customer, admin):
        result = LedgerService.award_points("+1 (555) 123-4567", 100, principal=admin)
        assert result.new_balance == 5

    @pytest.mark.parametrize("amount", [0, -10, "abc", None, Decimal("10000000000")])
    def test_invalid_amount(self, customer, admin, amount):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.award_points(PHONE, amount, principal=admin)
        assert exc.value.code == ErrorCode.INVALID_AMOUNT
        assert not Purchase.objects.exists()

    def test_unknown_customer(self, admin):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.award_points("+15550000000", 100, principal=admin)
        assert exc.value.code == ErrorCode.CUSTOMER_NOT_FOUND
        assert not Purchase.objects.exists()

    def test_invalid_phone(self, admin):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.award_points("12345", 100, principal=admin)
        assert exc.value.code == ErrorCode.INVALID_PHONE

    def test_customer_cannot_award_themselves(self, customer, owner):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.award_points(PHONE, 1000, principal=owner)
        assert exc.value.code == ErrorCode.PERMISSION_DENIED
        assert Customer.objects.get(phone=PHONE).points == 0

    def test_anonymous_rejected(self, customer):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.award_points(PHONE, 1000, principal=ANONYMOUS)
        assert exc.value.code == ErrorCode.UNAUTHENTICATED

    def test_gate_runs_before_validation(self, customer, owner):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.award_points("bad", -1, principal=owner)
        assert exc.value.code == ErrorCode.PERMISSION_DENIED

    def test_signal_sent(self, customer, admin):
        received = []

        def handler(sender, **kwargs):
            received.append(kwargs)

        points_awarded.connect(handler)
        try:
            result = LedgerService.award_points(PHONE, 300, principal=admin)
        finally:
            points_awarded.disconnect(handler)

        assert len(received) == 1
        assert received[0]["phone"] == PHONE
        assert received[0]["points_earned"] == 15
        assert received[0]["new_balance"] == 15
        assert received[0]["purchase_id"] == result.purchase_id


# ═══════════════════════════════════════════════════════════════════
# redeem_points
# ═══════════════════════════════════════════════════════════════════


class TestRedeemPoints:
    def test_redeem_small(self, funded, admin):
        result = LedgerService.redeem_points(PHONE, "small", principal=admin)

        assert result.points_spent == 100
        assert result.new_balance == 150
        assert result.tier == "small"
        assert result.reward_kg == Decimal("0.5")

        redemption = Redemption.objects.get(pk=result.redemption_id)
        assert redemption.points_spent == 100
        assert redemption.tier == "small"
        assert redemption.created_by == admin.uid

    def test_redeem_large(self, funded, admin):
        result = LedgerService.redeem_points(PHONE, "large", principal=admin)
        assert result.new_balance == 70
        assert result.reward_kg == Decimal("0.75")

    def test_redeem_exact_balance(self, customer, admin):
        LedgerService.award_points(PHONE, 2000, principal=admin)
        result = LedgerService.redeem_points(PHONE, "small", principal=admin)
        assert result.new_balance == 0

        with pytest.raises(PointsmanError) as exc:
            LedgerService.redeem_points(PHONE, "small", principal=admin)

        assert exc.value.code == ErrorCode.INSUFFICIENT_POINTS
        assert exc.value.data == {"available": 0, "requested": 100}
        assert Customer.objects.get(phone=PHONE).points == 0
        assert Redemption.objects.filter(customer_id=PHONE).count() == 1

    def test_insufficient_points(self, customer, admin):
        _set_points(PHONE, 179)

        with pytest.raises(PointsmanError) as exc:
            LedgerService.redeem_points(PHONE, "large", principal=admin)

        assert exc.value.code == ErrorCode.INSUFFICIENT_POINTS
        assert exc.value.data == {"available": 179, "requested": 180}
        assert Customer.objects.get(phone=PHONE).points == 179
        assert not Redemption.objects.exists()

    def test_one_point_short_of_small(self, customer, admin):
        _set_points(PHONE, 99)
        with pytest.raises(PointsmanError) as exc:
            LedgerService.redeem_points(PHONE, "small", principal=admin)
        assert exc.value.code == ErrorCode.INSUFFICIENT_POINTS

    def test_invalid_tier(self, funded, admin):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.redeem_points(PHONE, "medium", principal=admin)
        assert exc.value.code == ErrorCode.INVALID_TIER
        assert Customer.objects.get(phone=PHONE).points == 250

    def test_unknown_customer(self, admin):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.redeem_points("+15550000000", "small", principal=admin)
        assert exc.value.code == ErrorCode.CUSTOMER_NOT_FOUND

    def test_owner_cannot_redeem(self, funded, owner):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.redeem_points(PHONE, "small", principal=owner)
        assert exc.value.code == ErrorCode.PERMISSION_DENIED
        assert Customer.objects.get(phone=PHONE).points == 250

    def test_signal_sent(self, funded, admin):
        received = []

        def handler(sender, **kwargs):
            received.append(kwargs)

        points_redeemed.connect(handler)
        try:
            LedgerService.redeem_points(PHONE, "small", principal=admin)
        finally:
            points_redeemed.disconnect(handler)

        assert [r["new_balance"] for r in received] == [150]
        assert received[0]["tier"] == "small"

    def test_no_signal_on_failure(self, customer, admin):
        received = []

        def handler(sender, **kwargs):
            received.append(kwargs)

        points_redeemed.connect(handler)
        try:
            with pytest.raises(PointsmanError):
                LedgerService.redeem_points(PHONE, "small", principal=admin)
        finally:
            points_redeemed.disconnect(handler)

        assert received == []


# ═══════════════════════════════════════════════════════════════════
# compute_statistics
# ═══════════════════════════════════════════════════════════════════


class TestStatistics:
    def test_empty_ledger(self, admin):
        stats = LedgerService.compute_statistics(principal=admin)
        assert stats.total_customers == 0
        assert stats.total_purchases == 0
        assert stats.total_revenue == Decimal("0")
        assert stats.active_points == 0

    def test_totals(self, funded, other_session, admin):
        LedgerService.award_points(OTHER_PHONE, "199.99", principal=admin)
        LedgerService.redeem_points(PHONE, "small", principal=admin)

        stats = LedgerService.compute_statistics(principal=admin)

        assert stats.total_customers == 2
        assert stats.total_purchases == 2
        assert stats.total_redemptions == 1
        assert stats.total_revenue == Decimal("5199.99")
        assert stats.total_points_earned == 255
        assert stats.total_points_redeemed == 100
        assert stats.active_points == 155

    def test_active_points_equal_sum_of_balances(self, funded, other_session, admin):
        LedgerService.award_points(OTHER_PHONE, 800, principal=admin)
        LedgerService.redeem_points(PHONE, "large", principal=admin)

        stats = LedgerService.compute_statistics(principal=admin)

        balances = sum(Customer.objects.values_list("points", flat=True))
        assert stats.active_points == balances

    def test_owner_denied(self, owner):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.compute_statistics(principal=owner)
        assert exc.value.code == ErrorCode.PERMISSION_DENIED


# ═══════════════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════════════


class TestReads:
    def test_owner_reads_own_balance(self, funded, owner):
        assert LedgerService.get_balance(PHONE, principal=owner) == 250

    def test_admin_reads_any_customer(self, funded, admin):
        customer = LedgerService.get_customer(PHONE, principal=admin)
        assert customer.name == "Ana"
        assert customer.points == 250

    def test_owner_cannot_read_other_customer(self, customer, other_session):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.get_customer(PHONE, principal=other_session.principal)
        assert exc.value.code == ErrorCode.PERMISSION_DENIED

    def test_unknown_phone_for_admin(self, admin):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.get_customer("+15550000000", principal=admin)
        assert exc.value.code == ErrorCode.CUSTOMER_NOT_FOUND

    def test_unknown_phone_for_customer(self, owner):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.get_customer("+15550000000", principal=owner)
        assert exc.value.code == ErrorCode.PERMISSION_DENIED

    def test_stranger_principal(self, customer):
        with pytest.raises(PointsmanError) as exc:
            LedgerService.get_balance(PHONE, principal=Principal(uid="999"))
        assert exc.value.code == ErrorCode.PERMISSION_DENIED

    def test_history_limit(self, customer, admin, owner, settings):
        for amount in (100, 200, 300):
            LedgerService.award_points(PHONE, amount, principal=admin)

        assert len(LedgerService.get_purchases(PHONE, principal=owner)) == 3
        assert len(LedgerService.get_purchases(PHONE, limit=2, principal=owner)) == 2

        settings.POINTSMAN = {**settings.POINTSMAN, "HISTORY_LIMIT": 1}
        assert len(LedgerService.get_purchases(PHONE, principal=owner)) == 1

    def test_redemption_history(self, funded, admin, owner):
        LedgerService.redeem_points(PHONE, "small", principal=admin)
        history = LedgerService.get_redemptions(PHONE, principal=owner)
        assert [r.points_spent for r in history] == [100]
        assert history[0].customer_phone == PHONE

    def test_history_only_for_customer(self, funded, other_session, admin):
        LedgerService.award_points(OTHER_PHONE, 100, principal=admin)
        history = LedgerService.get_purchases(OTHER_PHONE, principal=admin)
        assert [p.amount for p in history] == [Decimal("100.00")]


# ═══════════════════════════════════════════════════════════════════
# audit_balances
# ═══════════════════════════════════════════════════════════════════


class TestAuditBalances:
    def test_consistent_ledger(self, funded, other_session, admin):
        LedgerService.redeem_points(PHONE, "small", principal=admin)
        assert LedgerService.audit_balances() == []

    def test_detects_drift(self, funded):
        _set_points(PHONE, 999)

        [discrepancy] = LedgerService.audit_balances()

        assert discrepancy.phone == PHONE
        assert discrepancy.recorded == 999
        assert discrepancy.expected == 250
