"""UTC timestamp helpers.

Timestamps are stored as fixed-width ISO 8601 strings so that lexical order
in the database equals chronological order; ``format_storage_timestamp`` and
``parse_storage_timestamp`` are the only two functions allowed to produce or
read that representation.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Example:
        >>> utc_now().tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Return ``dt`` as an aware UTC datetime; naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """Return the instant ``days`` days before ``now`` (default: current time)."""
    reference = ensure_utc(now) if now is not None else utc_now()
    return reference - timedelta(days=days)


def format_storage_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for a database column.

    Example:
        >>> format_storage_timestamp(datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc))
        '2025-11-04T12:00:00.000000Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORAGE_FORMAT)


def parse_storage_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a value written by format_storage_timestamp().

    Falls back to ``datetime.fromisoformat`` for rows written by other tools
    sharing the database. Returns None for empty or unparseable values.
    """
    if not value:
        return None

    try:
        return datetime.strptime(value, STORAGE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        pass

    cleaned = value.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        return None


def format_timestamp_for_log(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as ``YYYY-MM-DDTHH:MM:SSZ`` for log fields."""
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%SZ")
