"""UTC timestamp helpers.

Timestamps are stored as fixed-width ISO 8601 strings
(``YYYY-MM-DDTHH:MM:SS.ffffffZ``) so that lexical order in the database equals
chronological order.
"""

from datetime import datetime, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Return ``dt`` as an aware UTC datetime; naive values are taken to be UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_for_storage(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for a string timestamp column.

    Example:
        >>> format_for_storage(datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc))
        '2025-11-04T12:00:00.000000Z'
    """
    if dt is None:
        return None
    return ensure_utc(dt).strftime(STORAGE_FORMAT)


def parse_from_storage(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back to an aware UTC datetime.

    Accepts values with or without microseconds; empty strings map to None.
    """
    if not value:
        return None

    raw = value.rstrip("Z")
    try:
        parsed = datetime.strptime(raw, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        parsed = datetime.strptime(raw, "%Y-%m-%dT%H:%M:%S")

    return parsed.replace(tzinfo=timezone.utc)
