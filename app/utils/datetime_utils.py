"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for reviewed_at, cancelled_at, created_at, etc."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def iso_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 in UTC with +00:00 offset. Use for all API response datetime fields."""
    dt = ensure_utc(dt)
    return dt.isoformat() if dt is not None else None
