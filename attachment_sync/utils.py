"""Utility helpers shared across modules."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def parse_graph_datetime(value: str) -> datetime:
    """Convert Graph ISO strings (with trailing Z) into aware UTC datetimes."""
    return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Force a datetime into UTC without altering instant."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def isoformat_utc(dt: datetime) -> str:
    """Return a millisecond-precision ISO string with a 'Z' suffix, as Graph expects."""
    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def received_since_filter(hours: int, now: datetime | None = None) -> str:
    """Build the $filter selecting messages with attachments from the last ``hours`` hours."""
    since = ensure_utc(now or datetime.now(tz=UTC)) - timedelta(hours=hours)
    return f"receivedDateTime ge {isoformat_utc(since)} and hasAttachments eq true"
