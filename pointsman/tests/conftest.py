"""Pytest fixtures for Pointsman tests."""

import pytest
from django.contrib.auth import get_user_model

from pointsman.adapters import get_store, reset_stores
from pointsman.identity import Principal
from pointsman.service import LedgerService
from pointsman.services import accounts

MEMORY_BACKEND = "pointsman.adapters.memory_store.InMemoryDocumentStore"

PHONE = "+15551234567"
OTHER_PHONE = "+15557654321"
PASSWORD = "secret-123"


@pytest.fixture(autouse=True)
def fresh_stores():
    """Every test starts with new backend instances."""
    reset_stores()
    yield
    reset_stores()


@pytest.fixture
def memory_store(settings):
    """Switch to the optimistic in-memory store."""
    settings.POINTSMAN = {"STORE_BACKEND": MEMORY_BACKEND}
    reset_stores()
    return get_store()


@pytest.fixture
def admin_user(db):
    """Staff user holding the AdminRole marker."""
    user = get_user_model().objects.create_user(
        username="manager",
        password=PASSWORD,
        is_staff=True,
        is_superuser=True,
    )
    accounts.grant_admin(str(user.pk))
    return user


@pytest.fixture
def admin(admin_user):
    """Principal of the admin user."""
    return Principal(uid=str(admin_user.pk))


@pytest.fixture
def session(db):
    """Registered customer with zero points."""
    return accounts.register_customer(PHONE, PASSWORD, name="Ana")


@pytest.fixture
def customer(session):
    return session.customer


@pytest.fixture
def owner(session):
    """Principal of the registered customer."""
    return session.principal


@pytest.fixture
def other_session(db):
    return accounts.register_customer(OTHER_PHONE, PASSWORD, name="Bruno")


@pytest.fixture
def funded(customer, admin):
    """Customer with 250 points (purchase of 5000)."""
    LedgerService.award_points(customer.phone, 5000, principal=admin)
    return customer
