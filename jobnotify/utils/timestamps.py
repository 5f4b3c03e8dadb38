"""UTC timestamp helpers.

Timestamps are persisted as ISO-8601 strings with a ``Z`` suffix so that
lexical order equals chronological order in SQLite.
"""

from datetime import datetime, timezone
from typing import Optional

_STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime for storage.

    Naive datetimes are assumed to already be UTC.

    Example:
        >>> format_timestamp(datetime(2025, 11, 4, 10, 30, tzinfo=timezone.utc))
        '2025-11-04T10:30:00.000000Z'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(_STORAGE_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware UTC datetime.

    Returns None for empty input.
    """
    if not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    dt = datetime.fromisoformat(normalized)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
