"""UTC datetime helpers.

Timestamps are stored as aware UTC values. SQLite drops the offset on
the way back, so readers treat naive values as UTC and API responses
always carry an explicit `+00:00` offset.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime; naive input is read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """Format a stored timestamp as ISO 8601 with a UTC offset."""
    return to_utc(value).isoformat()
