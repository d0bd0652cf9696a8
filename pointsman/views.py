"""
Ledger JSON endpoints.

The caller is resolved from the Django session (``request.user``) into a
Principal and passed explicitly into every LedgerService call.

Errors render as:
    {"error": {"code": "...", "message": "...", "data": {...}}}
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal

from django.http import JsonResponse
from django.views import View

from pointsman.exceptions import ErrorCode, PointsmanError, describe_error
from pointsman.identity import principal_for_user
from pointsman.service import LedgerService

logger = logging.getLogger(__name__)

# Every ErrorCode has a status
ERROR_STATUS = {
    ErrorCode.CUSTOMER_NOT_FOUND: 404,
    ErrorCode.INVALID_AMOUNT: 400,
    ErrorCode.INVALID_PHONE: 400,
    ErrorCode.INVALID_TIER: 400,
    ErrorCode.INSUFFICIENT_POINTS: 409,
    ErrorCode.RECORD_IMMUTABLE: 409,
    ErrorCode.STORE_UNAVAILABLE: 503,
    ErrorCode.TRANSACTION_CONFLICT: 409,
    ErrorCode.CUSTOMER_EXISTS: 409,
    ErrorCode.WEAK_PASSWORD: 400,
    ErrorCode.INVALID_CREDENTIALS: 401,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.UNAUTHENTICATED: 401,
    ErrorCode.INVALID_REQUEST: 400,
}


def error_response(exc: PointsmanError) -> JsonResponse:
    return JsonResponse({"error": exc.as_dict()}, status=ERROR_STATUS[exc.code])


def _read_json(request) -> dict:
    """
    Parse a JSON object body. Numbers with a fraction become Decimal.

    Raises:
        PointsmanError: INVALID_REQUEST
    """
    try:
        data = json.loads(request.body or b"{}", parse_float=Decimal)
    except ValueError:
        raise PointsmanError(ErrorCode.INVALID_REQUEST, reason="malformed JSON")
    if not isinstance(data, dict):
        raise PointsmanError(ErrorCode.INVALID_REQUEST, reason="not an object")
    return data


def _purchase_dict(purchase) -> dict:
    return {
        "id": purchase.id,
        "amount": purchase.amount,
        "points_earned": purchase.points_earned,
        "created_at": purchase.created_at,
    }


def _redemption_dict(redemption) -> dict:
    return {
        "id": redemption.id,
        "tier": redemption.tier,
        "points_spent": redemption.points_spent,
        "reward_kg": redemption.reward_kg,
        "created_at": redemption.created_at,
    }


class LedgerView(View):
    """Base view: maps ledger errors to JSON responses."""

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except PointsmanError as exc:
            return error_response(exc)
        except Exception as exc:
            logger.exception("Ledger view %s failed", type(self).__name__)
            return JsonResponse(
                {"error": {"code": "INTERNAL", "message": describe_error(exc)}},
                status=500,
            )

    def principal(self, request):
        return principal_for_user(getattr(request, "user", None))


class CustomerView(LedgerView):
    """GET balance and recent history (owner or admin)."""

    def get(self, request, phone):
        principal = self.principal(request)
        customer = LedgerService.get_customer(phone, principal=principal)
        purchases = LedgerService.get_purchases(customer.phone, principal=principal)
        redemptions = LedgerService.get_redemptions(customer.phone, principal=principal)
        return JsonResponse(
            {
                "phone": customer.phone,
                "name": customer.name,
                "points": customer.points,
                "purchases": [_purchase_dict(p) for p in purchases],
                "redemptions": [_redemption_dict(r) for r in redemptions],
            }
        )


class PurchaseView(LedgerView):
    """POST {"amount": ...} to record a purchase (admin)."""

    def post(self, request, phone):
        data = _read_json(request)
        result = LedgerService.award_points(
            phone,
            data.get("amount"),
            principal=self.principal(request),
        )
        return JsonResponse(
            {
                "purchase_id": result.purchase_id,
                "points_earned": result.points_earned,
                "new_balance": result.new_balance,
            },
            status=201,
        )


class RedemptionView(LedgerView):
    """POST {"tier": "small"|"large"} to redeem a reward (admin)."""

    def post(self, request, phone):
        data = _read_json(request)
        result = LedgerService.redeem_points(
            phone,
            data.get("tier"),
            principal=self.principal(request),
        )
        return JsonResponse(
            {
                "redemption_id": result.redemption_id,
                "tier": result.tier,
                "points_spent": result.points_spent,
                "reward_kg": result.reward_kg,
                "new_balance": result.new_balance,
            },
            status=201,
        )


class StatisticsView(LedgerView):
    """GET dashboard totals (admin)."""

    def get(self, request):
        stats = LedgerService.compute_statistics(principal=self.principal(request))
        return JsonResponse(
            {
                "total_customers": stats.total_customers,
                "total_purchases": stats.total_purchases,
                "total_redemptions": stats.total_redemptions,
                "total_revenue": stats.total_revenue,
                "total_points_earned": stats.total_points_earned,
                "total_points_redeemed": stats.total_points_redeemed,
                "active_points": stats.active_points,
            }
        )
