"""UTC helpers.

Every timestamp the scanner produces or stores is timezone-aware UTC.
``datetime.utcnow()`` and ``datetime.utcfromtimestamp()`` return naive values
and are deprecated since Python 3.12, so they are not used.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def utcfromtimestamp(ts: float) -> datetime:
    """Convert a POSIX timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
