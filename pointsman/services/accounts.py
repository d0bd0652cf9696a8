"""Account service - registration, login and admin markers.

The identity provider is django.contrib.auth. Customers sign in with
their phone number, mapped to the username '<phone>@<EMAIL_DOMAIN>'.
"""

import logging
from dataclasses import dataclass

from django.contrib.auth import authenticate, get_user_model
from django.db import transaction

from pointsman.adapters import get_store
from pointsman.conf import pointsman_settings
from pointsman.exceptions import ErrorCode, PointsmanError
from pointsman.identity import Principal
from pointsman.models import Customer
from pointsman.protocols.store import CustomerRecord
from pointsman.signals import auth_state_changed, customer_registered
from pointsman.utils import clean_phone, phone_to_username

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerSession:
    """A signed-in customer."""

    principal: Principal
    customer: CustomerRecord


def register_customer(phone: str, password: str, name: str = "") -> CustomerSession:
    """
    Create the identity-provider user and the Customer (0 points).

    Raises:
        PointsmanError: INVALID_PHONE, WEAK_PASSWORD, CUSTOMER_EXISTS
    """
    phone = clean_phone(phone)
    min_length = pointsman_settings.MIN_PASSWORD_LENGTH
    if len(password or "") < min_length:
        raise PointsmanError(
            ErrorCode.WEAK_PASSWORD,
            message=f"Password must be at least {min_length} characters.",
            min_length=min_length,
        )

    store = get_store()
    if store.get_customer(phone) is not None:
        raise PointsmanError(ErrorCode.CUSTOMER_EXISTS, phone=phone)

    User = get_user_model()
    username = phone_to_username(phone)

    # The user row rolls back if the customer document cannot be created
    with transaction.atomic():
        if User.objects.filter(username=username).exists():
            raise PointsmanError(ErrorCode.CUSTOMER_EXISTS, phone=phone)
        user = User.objects.create_user(username=username, password=password)
        customer = store.create_customer(phone, name=name, identity_ref=str(user.pk))

    principal = Principal(uid=str(user.pk), phone=phone)
    logger.info("Registered customer %s", phone)
    customer_registered.send(sender=Customer, customer=customer)
    auth_state_changed.send(sender=Principal, principal=principal, is_authenticated=True)
    return CustomerSession(principal=principal, customer=customer)


def login_customer(phone: str, password: str) -> CustomerSession:
    """
    Authenticate a customer by phone and password.

    ``last_login`` is updated as a separate best-effort write.

    Raises:
        PointsmanError: INVALID_PHONE, INVALID_CREDENTIALS, CUSTOMER_NOT_FOUND
    """
    phone = clean_phone(phone)
    user = authenticate(username=phone_to_username(phone), password=password)
    if user is None:
        raise PointsmanError(ErrorCode.INVALID_CREDENTIALS)

    store = get_store()
    customer = store.get_customer(phone)
    if customer is None:
        raise PointsmanError(ErrorCode.CUSTOMER_NOT_FOUND, phone=phone)

    record_login(phone)

    principal = Principal(uid=str(user.pk), phone=phone)
    auth_state_changed.send(sender=Principal, principal=principal, is_authenticated=True)
    return CustomerSession(principal=principal, customer=customer)


def login_admin(username: str, password: str) -> Principal:
    """
    Authenticate a staff member holding an AdminRole marker.

    Raises:
        PointsmanError: INVALID_CREDENTIALS, PERMISSION_DENIED
    """
    user = authenticate(username=username, password=password)
    if user is None:
        raise PointsmanError(ErrorCode.INVALID_CREDENTIALS)

    principal = Principal(uid=str(user.pk))
    if not get_store().is_admin(principal.uid):
        raise PointsmanError(ErrorCode.PERMISSION_DENIED, uid=principal.uid)

    auth_state_changed.send(sender=Principal, principal=principal, is_authenticated=True)
    return principal


def logout(principal: Principal) -> None:
    """Announce the end of a session."""
    auth_state_changed.send(sender=Principal, principal=principal, is_authenticated=False)


def record_login(phone: str) -> None:
    """Update last_login. Failures are logged, never raised."""
    try:
        get_store().touch_last_login(phone)
    except PointsmanError as exc:
        logger.warning("Could not record last login for %s: %s", phone, exc)


def grant_admin(uid: str) -> None:
    """Add the AdminRole marker for a principal."""
    get_store().set_admin(uid, True)
    logger.info("Granted admin role to %s", uid)


def revoke_admin(uid: str) -> None:
    """Remove the AdminRole marker for a principal."""
    get_store().set_admin(uid, False)
    logger.info("Revoked admin role from %s", uid)
