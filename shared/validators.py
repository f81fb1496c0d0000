"""
Account input validators: framework-agnostic, pure functions.

Every validator returns plain values; the service layer decides which
ValidationError to raise so messages stay in one place.
"""

from __future__ import annotations

import re
from typing import List, Tuple

import validators as _validators

DIETARY_PREFERENCES = ("All", "Vegetarian", "Non-Vegetarian", "Vegan")

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
COUNTRY_MAX_LENGTH = 100
CUISINE_MAX_LENGTH = 100

_NAME_PATTERN = re.compile(r"^[\w][\w .'-]*$", re.UNICODE)
_SPECIAL_CHARS = r'[!@#$%^&*()_+\-=\[\]{};\':"\\|,.<>\/?~`]'


def normalize_email(email: str) -> str:
    """Trim and lower-case an email address for storage and lookup."""
    return (email or "").strip().lower()


def validate_email(email: str) -> bool:
    """Return True if *email* is a syntactically valid address (max 255 chars)."""
    if not email or len(email) > 255:
        return False
    return bool(_validators.email(email))


def validate_display_name(name: str) -> bool:
    """Return True for 2-50 characters of letters, digits, spaces, ``.'-_``."""
    if not name:
        return False
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        return False
    return bool(_NAME_PATTERN.match(name))


def validate_country(country: str) -> bool:
    return bool(country) and len(country) <= COUNTRY_MAX_LENGTH


def validate_dietary_preference(value: str) -> bool:
    return value in DIETARY_PREFERENCES


def validate_password(password: str) -> Tuple[bool, List[str]]:
    """
    Validate password strength.

    Returns:
        Tuple[bool, List[str]]: (is_valid, missing_requirements)
    """
    if not password:
        return False, ["Password is required"]

    missing = []

    if len(password) < 8:
        missing.append("At least 8 characters")
    if len(password) > 128:
        missing.append("Maximum 128 characters")
    if not re.search(r"[A-Z]", password):
        missing.append("At least one uppercase letter")
    if not re.search(r"[a-z]", password):
        missing.append("At least one lowercase letter")
    if not re.search(r"[0-9]", password):
        missing.append("At least one number")
    if not re.search(_SPECIAL_CHARS, password):
        missing.append("At least one special character")

    return len(missing) == 0, missing


def clean_cuisines(cuisines: List[str]) -> List[str]:
    """Trim, drop blanks and de-duplicate (case-insensitive), keeping order."""
    seen: set[str] = set()
    cleaned: List[str] = []
    for cuisine in cuisines:
        value = (cuisine or "").strip()
        if not value or value.lower() in seen:
            continue
        seen.add(value.lower())
        cleaned.append(value[:CUISINE_MAX_LENGTH])
    return cleaned
