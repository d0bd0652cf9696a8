"""Pointsman services.

The ledger itself is pointsman.service.LedgerService. Account operations
(registration, login, admin markers) live in pointsman.services.accounts.
"""

from pointsman.services import accounts

__all__ = ["accounts"]
