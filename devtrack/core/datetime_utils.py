"""Timezone-aware datetime utilities.

The store keeps naive datetimes that represent UTC. Everything entering or
leaving the store goes through these helpers.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def utc_now_naive() -> datetime:
    """Return current UTC time as naive datetime (for DB compatibility)."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_utc_naive(dt: datetime | None) -> datetime | None:
    """Convert a datetime to naive UTC datetime.

    Args:
        dt: Datetime to convert (can be aware or naive)

    Returns:
        Naive datetime in UTC, or None if input is None
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def to_rfc3339(dt: datetime) -> str:
    """Render a datetime as an RFC3339 string in UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC).isoformat()
    return dt.astimezone(UTC).isoformat()
