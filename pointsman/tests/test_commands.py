"""Tests for management commands."""

from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from pointsman.adapters import get_store
from pointsman.models import Customer

pytestmark = pytest.mark.django_db

PHONE = "+15551234567"


class TestAuditCommand:
    def test_clean_ledger(self, funded):
        out = StringIO()
        call_command("pointsman_audit", stdout=out)
        assert "All balances match" in out.getvalue()

    def test_mismatch_fails(self, funded):
        Customer.objects.filter(phone=PHONE).update(points=1)
        err = StringIO()

        with pytest.raises(CommandError, match="1 balance"):
            call_command("pointsman_audit", stderr=err)

        assert f"{PHONE}: recorded 1, expected 250" in err.getvalue()


class TestAdminCommand:
    def test_grant_and_revoke(self):
        out = StringIO()

        call_command("pointsman_admin", "grant", "12", stdout=out)
        assert get_store().is_admin("12")

        call_command("pointsman_admin", "revoke", "12", stdout=out)
        assert not get_store().is_admin("12")
        assert "Revoked admin role from 12." in out.getvalue()

    def test_unknown_action(self):
        with pytest.raises(CommandError):
            call_command("pointsman_admin", "promote", "12")
