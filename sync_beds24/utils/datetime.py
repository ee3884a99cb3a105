"""UTC datetime utilities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from dateutil import parser as date_parser


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    This function should be used instead of datetime.now() or datetime.utcnow()
    to ensure all timestamps are timezone-aware and stored in UTC.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes and convert aware ones to UTC.

    Some drivers (SQLite) return naive values for timezone-aware columns.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a Beds24 timestamp ("2025-03-01T10:15:00Z", "2025-03-01 10:15:00") to aware UTC.

    Returns None for empty or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return ensure_utc(date_parser.isoparse(str(value)))
    except ValueError:
        try:
            return ensure_utc(date_parser.parse(str(value)))
        except (ValueError, OverflowError):
            return None


def to_beds24_timestamp(value: datetime) -> str:
    """Format an aware datetime the way Beds24 expects in modifiedFrom filters."""
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")  # type: ignore[union-attr]
