"""Principals: the explicit caller identity passed into every ledger call."""

from dataclasses import dataclass

from pointsman.adapters import get_store


@dataclass(frozen=True)
class Principal:
    """
    Authenticated caller.

    ``uid`` is the identity-provider principal id (auth user pk as a
    string). ``phone`` is set for customer sessions. Admin rights are
    not carried here; gates look them up in the store on every check.
    """

    uid: str
    phone: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.uid)


ANONYMOUS = Principal(uid="")


def principal_for_user(user) -> Principal:
    """Build a Principal from a Django auth user (or AnonymousUser)."""
    if user is None or not user.is_authenticated:
        return ANONYMOUS

    uid = str(user.pk)
    customer = get_store().find_customer_by_identity(uid)
    return Principal(uid=uid, phone=customer.phone if customer else None)
