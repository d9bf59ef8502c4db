"""Datetime utility functions for timezone handling and record timestamps."""
from datetime import datetime, UTC
from typing import Optional


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware in UTC.

    Naive datetimes are treated as UTC; aware datetimes are converted.

    Example:
        >>> naive_dt = datetime(2025, 1, 1, 12, 0, 0)
        >>> ensure_utc(naive_dt).tzinfo == UTC
        True

        >>> ensure_utc(None) is None
        True
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def serialize_datetime_utc(dt: datetime) -> str:
    """
    Serialize datetime to ISO 8601 with explicit UTC timezone.

    This ensures JavaScript's Date constructor interprets the timestamp correctly.
    """
    return ensure_utc(dt).isoformat().replace('+00:00', 'Z')


def format_human_timestamp(dt: datetime) -> str:
    """Human-readable local time shown next to each stored record."""
    local = ensure_utc(dt).astimezone()
    return local.strftime("%Y/%m/%d %H:%M:%S")


def utc_now() -> datetime:
    return datetime.now(UTC)
