"""Timezone-aware datetime helpers.

Everything the service stores or compares is a UTC-aware `datetime`; these helpers keep
naive values (from callers, or legacy documents) from leaking in.
"""

from datetime import date, datetime, time, timezone
from typing import Union


def utcnow() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Ensure a datetime object is timezone-aware and in UTC.

    If the datetime is naive (no tzinfo), it's assumed to be UTC.
    If the datetime has a different timezone, it's converted to UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def start_of_day(value: Union[date, datetime]) -> datetime:
    """Midnight UTC of the calendar day `value` falls on.

    Aware datetimes keep their own calendar day (a reflection picked for Jan 3 in
    US time is still the Jan 3 reflection).
    """
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min, tzinfo=timezone.utc)
