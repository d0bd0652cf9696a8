"""
Pointsman Gates - Access rules.

A1: Authenticated - Caller carries an identity-provider principal
A2: AdminAccess - Principal holds an AdminRole marker
A3: CustomerAccess - Principal owns the customer document, or is an admin

Purchases and redemptions are readable under A3 and writable under A2.
"""

from dataclasses import dataclass

from pointsman.adapters import get_store
from pointsman.exceptions import ErrorCode, PointsmanError
from pointsman.identity import Principal


class GateError(PointsmanError):
    """Gate validation error."""

    def __init__(self, gate_name: str, code: str, message: str | None = None, **details):
        self.gate_name = gate_name
        super().__init__(code, message, gate=gate_name, **details)


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Pointsman access gates."""

    # =========================================================================
    # A1: Authenticated
    # =========================================================================

    @classmethod
    def authenticated(cls, principal: Principal | None) -> GateResult:
        """
        A1: Caller must be authenticated.

        Raises:
            GateError: UNAUTHENTICATED
        """
        if principal is None or not principal.is_authenticated:
            raise GateError("A1_Authenticated", ErrorCode.UNAUTHENTICATED)
        return GateResult(True, "A1_Authenticated")

    @classmethod
    def check_authenticated(cls, principal: Principal | None) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.authenticated(principal)
            return True
        except GateError:
            return False

    # =========================================================================
    # A2: Admin Access
    # =========================================================================

    @classmethod
    def admin_access(cls, principal: Principal | None) -> GateResult:
        """
        A2: Principal must hold an AdminRole marker.

        Raises:
            GateError: UNAUTHENTICATED, PERMISSION_DENIED
        """
        cls.authenticated(principal)
        if not get_store().is_admin(principal.uid):
            raise GateError(
                "A2_AdminAccess",
                ErrorCode.PERMISSION_DENIED,
                uid=principal.uid,
            )
        return GateResult(True, "A2_AdminAccess")

    @classmethod
    def check_admin_access(cls, principal: Principal | None) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.admin_access(principal)
            return True
        except GateError:
            return False

    # =========================================================================
    # A3: Customer Access
    # =========================================================================

    @classmethod
    def customer_access(cls, principal: Principal | None, phone: str) -> GateResult:
        """
        A3: Principal owns the customer (identity_ref == uid) or is an admin.

        Unknown customers are reported as PERMISSION_DENIED to non-admins
        so the gate does not reveal which phone numbers are enrolled.

        Raises:
            GateError: UNAUTHENTICATED, PERMISSION_DENIED
        """
        cls.authenticated(principal)
        store = get_store()
        if store.is_admin(principal.uid):
            return GateResult(True, "A3_CustomerAccess", "admin")

        customer = store.get_customer(phone)
        if customer is None or customer.identity_ref != principal.uid:
            raise GateError(
                "A3_CustomerAccess",
                ErrorCode.PERMISSION_DENIED,
                uid=principal.uid,
                phone=phone,
            )
        return GateResult(True, "A3_CustomerAccess", "owner")

    @classmethod
    def check_customer_access(cls, principal: Principal | None, phone: str) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.customer_access(principal, phone)
            return True
        except GateError:
            return False
