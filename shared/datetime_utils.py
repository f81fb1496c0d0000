"""
Date/time helpers: framework-agnostic.

Everything the account core compares is a timezone-aware UTC datetime.
MongoDB hands back naive datetimes unless the client is tz-aware, so values
read from the store pass through ``ensure_utc`` before comparison.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime; naive values are assumed UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def same_utc_day(a: Optional[datetime], b: datetime) -> bool:
    """True when *a* falls on the same UTC calendar day as *b*.

    ``None`` never matches, so a counter that was never touched reads as
    belonging to a previous day.
    """
    if a is None:
        return False
    return ensure_utc(a).date() == ensure_utc(b).date()
