"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def seconds_between(start: datetime, end: datetime) -> float:
    """Seconds from start to end, never negative (clock skew reads as zero)."""
    return max((end - start).total_seconds(), 0.0)
