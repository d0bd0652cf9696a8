"""Pointsman protocols."""

from pointsman.protocols.store import (
    CUSTOMERS,
    PURCHASES,
    REDEMPTIONS,
    CustomerRecord,
    DocumentStore,
    PurchaseRecord,
    RedemptionRecord,
    StoreTransaction,
)

__all__ = [
    # Collections
    "CUSTOMERS",
    "PURCHASES",
    "REDEMPTIONS",
    # Records
    "CustomerRecord",
    "PurchaseRecord",
    "RedemptionRecord",
    # Store
    "DocumentStore",
    "StoreTransaction",
]
