"""
Django Pointsman - Butchery loyalty ledger.

Usage:
    from pointsman import LedgerService, PointsmanError
    from pointsman.identity import Principal
    from pointsman.services import accounts

    accounts.grant_admin("42")               # AdminRole marker for auth user 42
    admin = Principal(uid="42")

    LedgerService.compute_points(250)                       # 10
    LedgerService.award_points("+15551234567", 250, principal=admin)
    LedgerService.redeem_points("+15551234567", "small", principal=admin)
    stats = LedgerService.compute_statistics(principal=admin)
"""


def __getattr__(name):
    if name == "LedgerService":
        from pointsman.service import LedgerService

        return LedgerService
    if name == "PointsmanError":
        from pointsman.exceptions import PointsmanError

        return PointsmanError
    if name == "ErrorCode":
        from pointsman.exceptions import ErrorCode

        return ErrorCode
    if name == "Principal":
        from pointsman.identity import Principal

        return Principal
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["LedgerService", "PointsmanError", "ErrorCode", "Principal"]
__version__ = "0.1.0"
