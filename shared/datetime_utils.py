"""
Date/time parsing and comparison utilities — framework-agnostic.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (MongoDB returns naive UTC by default)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_calendar_date(value: Any) -> Optional[date]:
    """Reduce *value* to its calendar date, dropping time and timezone.

    The year/month/day are taken as written: ``"1990-05-12T23:30:00-05:00"``
    is 12 May 1990, not the UTC instant it denotes.

    Accepts ``date``, ``datetime`` and ISO 8601 strings (date-only or
    date-time, optional ``Z`` suffix). Returns ``None`` when *value* cannot be
    interpreted as a date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def same_calendar_date(left: Any, right: Any) -> bool:
    """True when both values denote the same year, month and day."""
    left_date = to_calendar_date(left)
    right_date = to_calendar_date(right)
    if left_date is None or right_date is None:
        return False
    return left_date == right_date
