"""Phone normalization and identity-provider username helpers."""

import re

from pointsman.conf import pointsman_settings
from pointsman.exceptions import ErrorCode, PointsmanError

_PHONE_STRIP = re.compile(r"[^\d+]")
_PHONE_VALID = re.compile(r"^\+\d{10,15}$")


def normalize_phone(phone: str) -> str:
    """
    Strip everything except digits and '+'.

    "+1 (555) 123-4567" -> "+15551234567". Does not validate.
    """
    return _PHONE_STRIP.sub("", phone or "")


def clean_phone(phone: str) -> str:
    """
    Normalize and validate a phone number.

    Raises:
        PointsmanError: INVALID_PHONE
    """
    if not isinstance(phone, str):
        raise PointsmanError(ErrorCode.INVALID_PHONE, phone=repr(phone))
    normalized = normalize_phone(phone)
    if not _PHONE_VALID.match(normalized):
        raise PointsmanError(ErrorCode.INVALID_PHONE, phone=phone)
    return normalized


def phone_to_username(phone: str) -> str:
    """Identity-provider username for a customer: '<phone>@<EMAIL_DOMAIN>'."""
    return f"{normalize_phone(phone)}@{pointsman_settings.EMAIL_DOMAIN}"
