"""
Pointsman configuration.

Usage in settings.py:
    POINTSMAN = {
        "STORE_BACKEND": "pointsman.adapters.django_store.DjangoDocumentStore",
        "CONFLICT_RETRIES": 1,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class PointsmanSettings:
    """Pointsman configuration settings."""

    # Document store backend (dotted path to a DocumentStore implementation)
    STORE_BACKEND: str = "pointsman.adapters.django_store.DjangoDocumentStore"

    # Optimistic stores: attempts per transaction before TRANSACTION_CONFLICT
    MAX_TRANSACTION_ATTEMPTS: int = 5

    # Ledger-level retries after the store gives up with TRANSACTION_CONFLICT
    CONFLICT_RETRIES: int = 1

    # Default page size for purchase/redemption history
    HISTORY_LIMIT: int = 10

    # Identity provider
    MIN_PASSWORD_LENGTH: int = 6
    EMAIL_DOMAIN: str = "butchery.local"


def get_pointsman_settings() -> PointsmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "POINTSMAN", {})
    return PointsmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_pointsman_settings(), name)


pointsman_settings = _LazySettings()
