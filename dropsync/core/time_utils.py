from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def newer_than(candidate: datetime | None, stored: datetime | None) -> bool:
    """Strict freshness check: a missing stored value is always older."""
    if candidate is None:
        return False
    if stored is None:
        return True
    return ensure_utc(candidate) > ensure_utc(stored)


def hours_between(start: datetime, end: datetime) -> float:
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600.0
