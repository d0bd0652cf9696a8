"""Pointsman models."""

from pointsman.models.customer import Customer
from pointsman.models.ledger import Purchase, Redemption
from pointsman.models.admin_role import AdminRole

__all__ = [
    "Customer",
    # Audit trail (append-only)
    "Purchase",
    "Redemption",
    # Access marker
    "AdminRole",
]
