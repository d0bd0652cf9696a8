"""Pointsman exceptions."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class ErrorCode(models.TextChoices):
    """
    Closed set of error codes.

    The label of each member is its user-facing message, so a code
    cannot exist without a message.
    """

    # Ledger
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND", _("Customer account not found.")
    INVALID_AMOUNT = "INVALID_AMOUNT", _("Purchase amount must be a positive number.")
    INVALID_PHONE = "INVALID_PHONE", _("Invalid phone number format.")
    INVALID_TIER = "INVALID_TIER", _("Unknown reward tier.")
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS", _("Not enough points for this reward.")
    RECORD_IMMUTABLE = "RECORD_IMMUTABLE", _("Ledger records cannot be changed or deleted.")

    # Store (transient)
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE", _("Database unavailable. Please try again later.")
    TRANSACTION_CONFLICT = "TRANSACTION_CONFLICT", _(
        "The account was changed by another operation. Please try again."
    )

    # Accounts and access
    CUSTOMER_EXISTS = "CUSTOMER_EXISTS", _("An account with this phone number already exists.")
    WEAK_PASSWORD = "WEAK_PASSWORD", _("Password is too short.")
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS", _("Incorrect phone number or password.")
    PERMISSION_DENIED = "PERMISSION_DENIED", _("Permission denied. Please check your credentials.")
    UNAUTHENTICATED = "UNAUTHENTICATED", _("Authentication required. Please log in again.")

    # Requests
    INVALID_REQUEST = "INVALID_REQUEST", _("Request body must be a JSON object.")


TRANSIENT_CODES = frozenset({ErrorCode.STORE_UNAVAILABLE, ErrorCode.TRANSACTION_CONFLICT})

GENERIC_MESSAGE = "An unexpected error occurred."

# Raw codes reported by hosted stores and identity providers
_EXTERNAL_CODES = {
    "permission-denied": ErrorCode.PERMISSION_DENIED,
    "unauthenticated": ErrorCode.UNAUTHENTICATED,
    "aborted": ErrorCode.TRANSACTION_CONFLICT,
    "unavailable": ErrorCode.STORE_UNAVAILABLE,
    "deadline-exceeded": ErrorCode.STORE_UNAVAILABLE,
    "resource-exhausted": ErrorCode.STORE_UNAVAILABLE,
}


class PointsmanError(Exception):
    """
    Structured exception for ledger, account and store operations.

    Usage:
        try:
            LedgerService.redeem_points(phone, "large", principal=admin)
        except PointsmanError as e:
            if e.code == ErrorCode.INSUFFICIENT_POINTS:
                show(e.message, e.data["available"])

    Codes outside ErrorCode are rejected with ValueError.
    """

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = ErrorCode(code)
        self.message = message or str(self.code.label)
        self.data = data
        super().__init__(f"{self.code.value}: {self.message}")

    @property
    def is_transient(self) -> bool:
        """True for store-level failures that may succeed on retry."""
        return self.code in TRANSIENT_CODES

    def as_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "data": self.data,
        }


def describe_error(error: BaseException) -> str:
    """
    Human-readable message for any error reaching the user.

    PointsmanError carries its own message. Foreign errors with a
    recognised ``code`` attribute map to that code's message; everything
    else gets the generic message plus the raw detail.
    """
    if isinstance(error, PointsmanError):
        return error.message

    raw_code = getattr(error, "code", None)
    if isinstance(raw_code, str):
        if raw_code in ErrorCode.values:
            return str(ErrorCode(raw_code).label)
        if raw_code in _EXTERNAL_CODES:
            return str(_EXTERNAL_CODES[raw_code].label)

    detail = str(error)
    if detail:
        return f"{GENERIC_MESSAGE} ({detail})"
    return GENERIC_MESSAGE
