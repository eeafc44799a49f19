"""
Input validators and normalisers: framework-agnostic, pure functions.
"""

from __future__ import annotations

import re
from typing import Optional

DEFAULT_COUNTRY_CODE = "63"

LOCAL_PHONE_PATTERN = r"^\d{10}$"
PREFIXED_PHONE_PATTERN = r"^(63\d{10}|\d{10})$"
OTP_CODE_PATTERN = r"^\d{6}$"

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,40}$")


def normalize_phone(phone: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Return the local form of *phone* used as the OTP challenge key.

    A 12-digit number carrying *country_code* loses the prefix and an 11-digit
    trunk number loses its leading ``0``, so ``639171234567``,
    ``09171234567`` and ``9171234567`` address the same challenge. Leading
    ``+`` and surrounding whitespace are stripped. Anything else is returned
    unchanged.
    """
    cleaned = phone.strip().lstrip("+")
    if len(cleaned) == 10 + len(country_code) and cleaned.startswith(country_code):
        return cleaned[len(country_code):]
    if len(cleaned) == 11 and cleaned.startswith("0"):
        return cleaned[1:]
    return cleaned


def to_international(phone: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Format *phone* as ``+<country><local>`` for an SMS gateway."""
    return f"+{country_code}{normalize_phone(phone, country_code)}"


def validate_username(username: str) -> bool:
    """Return True for 3-40 characters of letters, digits, ``_``, ``.`` or ``-``."""
    return bool(_USERNAME_RE.match(username))


def phone_variants(
    phone: str, country_code: str = DEFAULT_COUNTRY_CODE
) -> Optional[tuple[str, ...]]:
    """Return every stored form of *phone*: local, prefixed and trunk.

    Non-digits are dropped first. Returns None unless the number reduces to
    a 10-digit local form.
    """
    local = normalize_phone(re.sub(r"\D", "", phone), country_code)
    if not re.fullmatch(r"\d{10}", local):
        return None
    return local, f"{country_code}{local}", f"0{local}"
