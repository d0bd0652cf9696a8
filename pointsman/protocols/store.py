"""Document store protocol.

The ledger never touches persistence directly. Everything it needs from
the store is listed here: point reads, append-only writes, field queries
and a transaction primitive with per-document atomic read-modify-write.

Collections:
    customers    keyed by normalized phone
    purchases    keyed by auto-generated id, ``customer_phone`` foreign key
    redemptions  keyed by auto-generated id, ``customer_phone`` foreign key

Admin markers are keyed by identity-provider uid (is_admin / set_admin).

Configuration in settings.py:
    POINTSMAN = {
        "STORE_BACKEND": "pointsman.adapters.memory_store.InMemoryDocumentStore",
    }
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

CUSTOMERS = "customers"
PURCHASES = "purchases"
REDEMPTIONS = "redemptions"


@dataclass(frozen=True)
class CustomerRecord:
    """Customer document snapshot."""

    phone: str
    name: str
    points: int
    identity_ref: str
    created_at: datetime
    last_login: datetime | None = None


@dataclass(frozen=True)
class PurchaseRecord:
    """Purchase document (immutable)."""

    id: str
    customer_phone: str
    amount: Decimal
    points_earned: int
    created_at: datetime
    created_by: str = ""


@dataclass(frozen=True)
class RedemptionRecord:
    """Redemption document (immutable)."""

    id: str
    customer_phone: str
    tier: str
    points_spent: int
    reward_kg: Decimal
    created_at: datetime
    created_by: str = ""


@runtime_checkable
class StoreTransaction(Protocol):
    """
    Handle passed to ``run_transaction``'s write function.

    Reads return the state as of the transaction start. Writes are
    buffered and become visible only when the whole transaction commits.
    """

    def get_customer(self, phone: str) -> CustomerRecord | None:
        """Read a customer from the transaction's read set."""
        ...

    def update_points(self, phone: str, points: int) -> None:
        """Set the customer's balance on commit."""
        ...

    def append_record(self, collection: str, data: dict) -> str:
        """Append a purchase/redemption on commit. Returns its new id."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for the ledger's persistence backend."""

    def get_customer(self, phone: str) -> CustomerRecord | None:
        ...

    def create_customer(
        self,
        phone: str,
        name: str = "",
        identity_ref: str = "",
    ) -> CustomerRecord:
        """
        Create a customer with a zero balance.

        Raises:
            PointsmanError: CUSTOMER_EXISTS
        """
        ...

    def find_customer_by_identity(self, identity_ref: str) -> CustomerRecord | None:
        ...

    def touch_last_login(self, phone: str) -> None:
        """Best-effort ``last_login`` update, outside any ledger transaction."""
        ...

    def run_transaction(
        self,
        read_set: list[str],
        write_fn: Callable[[StoreTransaction], T],
    ) -> T:
        """
        Run ``write_fn`` atomically over the customers in ``read_set``.

        No other transaction on those customers interleaves. If
        ``write_fn`` raises, nothing is written and the exception
        propagates unchanged.

        Raises:
            PointsmanError: TRANSACTION_CONFLICT, STORE_UNAVAILABLE
        """
        ...

    def append_record(self, collection: str, data: dict) -> str:
        """Append a record outside a transaction. Returns its new id."""
        ...

    def query_by_field(
        self,
        collection: str,
        field: str,
        value,
        order_by: str = "-created_at",
        limit: int | None = None,
    ) -> list:
        """Records whose ``field`` equals ``value``; '-' prefix orders descending."""
        ...

    def stream(self, collection: str) -> Iterator:
        """Iterate every record in a collection."""
        ...

    def count(self, collection: str) -> int:
        ...

    def is_admin(self, uid: str) -> bool:
        ...

    def set_admin(self, uid: str, enabled: bool) -> None:
        ...
