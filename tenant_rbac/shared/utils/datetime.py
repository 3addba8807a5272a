"""Timezone-aware UTC timestamps for assignment, link and audit records.

SQLite hands back naive datetimes and JSON caches hand back ISO strings; DTOs
normalize both through ensure_datetime so comparisons never mix naive and aware
values.
"""

from datetime import UTC, datetime
from typing import Any


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to a naive datetime or convert an aware one; None passes through."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def ensure_datetime(value: Any) -> datetime | None:
    """Coerce a stored timestamp to aware UTC.

    Args:
        value: A datetime from a SQL adapter, an ISO-8601 string from a JSON
            store, or anything else (treated as absent).

    Returns:
        UTC-aware datetime, or None when value carries no timestamp.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str) and value:
        return ensure_utc(datetime.fromisoformat(value))
    return None
