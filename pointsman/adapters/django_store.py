"""Django ORM implementation of the DocumentStore protocol.

Conflict control is pessimistic: ``run_transaction`` locks the read set
with SELECT ... FOR UPDATE inside ``transaction.atomic()``, so a second
transaction on the same customer waits until the first one commits and
then reads the committed balance.

SQLite ignores FOR UPDATE and upgrades a deferred transaction to a write
lock only on its first write, so concurrent writers there either wait
(``"transaction_mode": "IMMEDIATE"`` in the database OPTIONS) or fail
with "database is locked", which is reported as TRANSACTION_CONFLICT
and retried by the ledger.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from pointsman.exceptions import ErrorCode, PointsmanError
from pointsman.models import AdminRole, Customer, Purchase, Redemption
from pointsman.protocols.store import (
    CUSTOMERS,
    PURCHASES,
    REDEMPTIONS,
    CustomerRecord,
    PurchaseRecord,
    RedemptionRecord,
)

logger = logging.getLogger(__name__)

_MODELS = {
    CUSTOMERS: Customer,
    PURCHASES: Purchase,
    REDEMPTIONS: Redemption,
}

# Document field -> ORM lookup
_FIELD_ALIASES = {
    "customer_phone": "customer_id",
}


# SQLSTATEs for serialization failure, deadlock and lock timeout
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})

# SQLite reports lock contention only in the message
_CONFLICT_MESSAGES = ("database is locked", "database table is locked")


def _is_lock_conflict(exc: DatabaseError) -> bool:
    cause = exc.__cause__
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True
    message = str(exc)
    return any(text in message for text in _CONFLICT_MESSAGES)


@contextmanager
def _store_errors():
    """
    Surface database failures as ledger errors.

    Lock contention and serialization failures become TRANSACTION_CONFLICT
    so the ledger re-runs the transaction; anything else is
    STORE_UNAVAILABLE.
    """
    try:
        yield
    except IntegrityError:
        raise
    except DatabaseError as exc:
        if _is_lock_conflict(exc):
            logger.warning("Document store lock conflict: %s", exc)
            raise PointsmanError(ErrorCode.TRANSACTION_CONFLICT, detail=str(exc)) from exc
        logger.warning("Document store error: %s", exc)
        raise PointsmanError(ErrorCode.STORE_UNAVAILABLE, detail=str(exc)) from exc


def _model_for(collection: str):
    try:
        return _MODELS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection!r}")


def _lookup(field: str) -> str:
    if field.startswith("-"):
        return "-" + _FIELD_ALIASES.get(field[1:], field[1:])
    return _FIELD_ALIASES.get(field, field)


def _to_record(obj):
    if isinstance(obj, Customer):
        return CustomerRecord(
            phone=obj.phone,
            name=obj.name,
            points=obj.points,
            identity_ref=obj.identity_ref,
            created_at=obj.created_at,
            last_login=obj.last_login,
        )
    if isinstance(obj, Purchase):
        return PurchaseRecord(
            id=str(obj.id),
            customer_phone=obj.customer_id,
            amount=obj.amount,
            points_earned=obj.points_earned,
            created_at=obj.created_at,
            created_by=obj.created_by,
        )
    return RedemptionRecord(
        id=str(obj.id),
        customer_phone=obj.customer_id,
        tier=obj.tier,
        points_spent=obj.points_spent,
        reward_kg=obj.reward_kg,
        created_at=obj.created_at,
        created_by=obj.created_by,
    )


def _create_record(collection: str, record_id: str, data: dict):
    if collection not in (PURCHASES, REDEMPTIONS):
        raise ValueError(f"Collection {collection!r} is not append-only")
    fields = dict(data)
    fields["customer_id"] = fields.pop("customer_phone")
    return _model_for(collection).objects.create(id=record_id, **fields)


class _DjangoTransaction:
    """StoreTransaction over rows locked by run_transaction."""

    def __init__(self, snapshot: dict[str, CustomerRecord | None]):
        self._snapshot = snapshot
        self._points: dict[str, int] = {}
        self._appends: list[tuple[str, str, dict]] = []

    def get_customer(self, phone: str) -> CustomerRecord | None:
        if phone not in self._snapshot:
            raise ValueError(f"{phone!r} is not in the transaction read set")
        return self._snapshot[phone]

    def update_points(self, phone: str, points: int) -> None:
        if self.get_customer(phone) is None:
            raise PointsmanError(ErrorCode.CUSTOMER_NOT_FOUND, phone=phone)
        self._points[phone] = points

    def append_record(self, collection: str, data: dict) -> str:
        record_id = str(uuid.uuid4())
        self._appends.append((collection, record_id, data))
        return record_id

    def commit(self) -> None:
        for phone, points in self._points.items():
            Customer.objects.filter(phone=phone).update(points=points)
        for collection, record_id, data in self._appends:
            _create_record(collection, record_id, data)


class DjangoDocumentStore:
    """DocumentStore backed by the default Django database."""

    def get_customer(self, phone: str) -> CustomerRecord | None:
        with _store_errors():
            customer = Customer.objects.filter(phone=phone).first()
        return _to_record(customer) if customer else None

    def create_customer(
        self,
        phone: str,
        name: str = "",
        identity_ref: str = "",
    ) -> CustomerRecord:
        with _store_errors():
            try:
                with transaction.atomic():
                    customer = Customer.objects.create(
                        phone=phone,
                        name=name,
                        identity_ref=identity_ref,
                    )
            except IntegrityError:
                raise PointsmanError(ErrorCode.CUSTOMER_EXISTS, phone=phone)
        return _to_record(customer)

    def find_customer_by_identity(self, identity_ref: str) -> CustomerRecord | None:
        if not identity_ref:
            return None
        with _store_errors():
            customer = Customer.objects.filter(identity_ref=identity_ref).first()
        return _to_record(customer) if customer else None

    def touch_last_login(self, phone: str) -> None:
        with _store_errors():
            Customer.objects.filter(phone=phone).update(last_login=timezone.now())

    def run_transaction(self, read_set, write_fn):
        phones = sorted(set(read_set))
        with _store_errors(), transaction.atomic():
            # Lock in phone order so overlapping read sets cannot deadlock
            locked = {
                customer.phone: customer
                for customer in Customer.objects.select_for_update()
                .filter(phone__in=phones)
                .order_by("phone")
            }
            txn = _DjangoTransaction(
                {
                    phone: _to_record(locked[phone]) if phone in locked else None
                    for phone in phones
                }
            )
            result = write_fn(txn)
            txn.commit()
        return result

    def append_record(self, collection: str, data: dict) -> str:
        record_id = str(uuid.uuid4())
        with _store_errors(), transaction.atomic():
            if not Customer.objects.filter(phone=data["customer_phone"]).exists():
                raise PointsmanError(
                    ErrorCode.CUSTOMER_NOT_FOUND,
                    phone=data["customer_phone"],
                )
            _create_record(collection, record_id, data)
        return record_id

    def query_by_field(self, collection, field, value, order_by="-created_at", limit=None):
        qs = (
            _model_for(collection)
            .objects.filter(**{_lookup(field): value})
            .order_by(_lookup(order_by))
        )
        if limit is not None:
            qs = qs[:limit]
        with _store_errors():
            return [_to_record(obj) for obj in qs]

    def stream(self, collection):
        qs = _model_for(collection).objects.order_by("pk")
        with _store_errors():
            for obj in qs.iterator():
                yield _to_record(obj)

    def count(self, collection: str) -> int:
        with _store_errors():
            return _model_for(collection).objects.count()

    def is_admin(self, uid: str) -> bool:
        if not uid:
            return False
        with _store_errors():
            return AdminRole.objects.filter(uid=uid).exists()

    def set_admin(self, uid: str, enabled: bool) -> None:
        with _store_errors():
            if enabled:
                AdminRole.objects.get_or_create(uid=uid)
            else:
                AdminRole.objects.filter(uid=uid).delete()
