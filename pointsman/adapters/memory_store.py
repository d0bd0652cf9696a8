"""In-process implementation of the DocumentStore protocol.

Behaves like a hosted document database: every customer document carries
a version, transactions read without locking and validate their read set
on commit. A transaction whose read set changed underneath it is thrown
away and run again from scratch, up to MAX_TRANSACTION_ATTEMPTS times.

Data lives only as long as the store instance.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace

from django.utils import timezone

from pointsman.conf import pointsman_settings
from pointsman.exceptions import ErrorCode, PointsmanError
from pointsman.protocols.store import (
    CUSTOMERS,
    PURCHASES,
    REDEMPTIONS,
    CustomerRecord,
    PurchaseRecord,
    RedemptionRecord,
)

logger = logging.getLogger(__name__)

_RECORD_TYPES = {
    PURCHASES: PurchaseRecord,
    REDEMPTIONS: RedemptionRecord,
}


class _MemoryTransaction:
    """StoreTransaction over one attempt's snapshot."""

    def __init__(self, snapshot: dict[str, CustomerRecord | None]):
        self._snapshot = snapshot
        self.points: dict[str, int] = {}
        self.appends: list[tuple[str, str, dict]] = []

    def get_customer(self, phone: str) -> CustomerRecord | None:
        if phone not in self._snapshot:
            raise ValueError(f"{phone!r} is not in the transaction read set")
        return self._snapshot[phone]

    def update_points(self, phone: str, points: int) -> None:
        if self.get_customer(phone) is None:
            raise PointsmanError(ErrorCode.CUSTOMER_NOT_FOUND, phone=phone)
        self.points[phone] = points

    def append_record(self, collection: str, data: dict) -> str:
        if collection not in _RECORD_TYPES:
            raise ValueError(f"Collection {collection!r} is not append-only")
        record_id = str(uuid.uuid4())
        self.appends.append((collection, record_id, data))
        return record_id


class InMemoryDocumentStore:
    """DocumentStore with optimistic, versioned transactions."""

    def __init__(self, max_attempts: int | None = None):
        self._lock = threading.Lock()
        self._max_attempts = max_attempts
        # phone -> (record, version)
        self._customers: dict[str, tuple[CustomerRecord, int]] = {}
        # collection -> [(sequence, record)]
        self._records: dict[str, list[tuple[int, object]]] = {
            PURCHASES: [],
            REDEMPTIONS: [],
        }
        self._sequence = 0
        self._admins: set[str] = set()

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def get_customer(self, phone: str) -> CustomerRecord | None:
        with self._lock:
            doc = self._customers.get(phone)
        return doc[0] if doc else None

    def create_customer(self, phone, name="", identity_ref=""):
        record = CustomerRecord(
            phone=phone,
            name=name.strip(),
            points=0,
            identity_ref=identity_ref,
            created_at=timezone.now(),
        )
        with self._lock:
            if phone in self._customers:
                raise PointsmanError(ErrorCode.CUSTOMER_EXISTS, phone=phone)
            self._customers[phone] = (record, 1)
        return record

    def find_customer_by_identity(self, identity_ref: str) -> CustomerRecord | None:
        if not identity_ref:
            return None
        with self._lock:
            for record, _version in self._customers.values():
                if record.identity_ref == identity_ref:
                    return record
        return None

    def touch_last_login(self, phone: str) -> None:
        with self._lock:
            doc = self._customers.get(phone)
            if doc:
                record, version = doc
                self._customers[phone] = (
                    replace(record, last_login=timezone.now()),
                    version + 1,
                )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def run_transaction(self, read_set, write_fn):
        phones = set(read_set)
        attempts = self._max_attempts or pointsman_settings.MAX_TRANSACTION_ATTEMPTS

        for attempt in range(1, attempts + 1):
            with self._lock:
                versions = {phone: self._version(phone) for phone in phones}
                snapshot = {
                    phone: self._customers[phone][0] if phone in self._customers else None
                    for phone in phones
                }

            txn = _MemoryTransaction(snapshot)
            result = write_fn(txn)

            with self._lock:
                if all(self._version(phone) == versions[phone] for phone in phones):
                    self._commit(txn)
                    return result

            logger.warning(
                "Transaction conflict on %s (attempt %d/%d)",
                sorted(phones),
                attempt,
                attempts,
            )

        raise PointsmanError(
            ErrorCode.TRANSACTION_CONFLICT,
            read_set=sorted(phones),
            attempts=attempts,
        )

    def _version(self, phone: str) -> int:
        doc = self._customers.get(phone)
        return doc[1] if doc else 0

    def _commit(self, txn: _MemoryTransaction) -> None:
        """Apply buffered writes. Caller holds the lock."""
        for phone, points in txn.points.items():
            record, version = self._customers[phone]
            self._customers[phone] = (replace(record, points=points), version + 1)
        for collection, record_id, data in txn.appends:
            self._append(collection, record_id, data)

    def _append(self, collection: str, record_id: str, data: dict) -> None:
        record = _RECORD_TYPES[collection](
            id=record_id,
            created_at=timezone.now(),
            **data,
        )
        self._sequence += 1
        self._records[collection].append((self._sequence, record))

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def append_record(self, collection: str, data: dict) -> str:
        if collection not in _RECORD_TYPES:
            raise ValueError(f"Collection {collection!r} is not append-only")
        record_id = str(uuid.uuid4())
        with self._lock:
            if data["customer_phone"] not in self._customers:
                raise PointsmanError(
                    ErrorCode.CUSTOMER_NOT_FOUND,
                    phone=data["customer_phone"],
                )
            self._append(collection, record_id, data)
        return record_id

    def _items(self, collection: str) -> list[tuple[int, object]]:
        if collection == CUSTOMERS:
            return list(enumerate(record for record, _version in self._customers.values()))
        try:
            return list(self._records[collection])
        except KeyError:
            raise ValueError(f"Unknown collection: {collection!r}")

    def query_by_field(self, collection, field, value, order_by="-created_at", limit=None):
        descending = order_by.startswith("-")
        key = order_by.lstrip("-")
        with self._lock:
            items = self._items(collection)
        matches = [(seq, rec) for seq, rec in items if getattr(rec, field) == value]
        matches.sort(key=lambda item: (getattr(item[1], key), item[0]), reverse=descending)
        records = [rec for _seq, rec in matches]
        return records[:limit] if limit is not None else records

    def stream(self, collection):
        with self._lock:
            items = self._items(collection)
        for _seq, record in items:
            yield record

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._items(collection))

    # ------------------------------------------------------------------
    # Admin markers
    # ------------------------------------------------------------------

    def is_admin(self, uid: str) -> bool:
        with self._lock:
            return bool(uid) and uid in self._admins

    def set_admin(self, uid: str, enabled: bool) -> None:
        with self._lock:
            if enabled:
                self._admins.add(uid)
            else:
                self._admins.discard(uid)
