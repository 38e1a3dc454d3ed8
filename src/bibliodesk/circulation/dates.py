"""Helpers for instants stored and compared in UTC."""

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Convert to UTC. Naive datetimes are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage(value: datetime) -> str:
    """Fixed-width UTC ISO string, so stored values sort chronologically."""
    return as_utc(value).isoformat(timespec="microseconds")


def from_storage(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO string back into an aware datetime."""
    if value is None:
        return None
    return as_utc(datetime.fromisoformat(value))


def parse_instant(text: str) -> datetime:
    """Parse user input as an instant.

    Accepts a date (YYYY-MM-DD, taken as midnight UTC) or an ISO datetime.

    Raises:
        ValueError: If the text is neither
    """
    text = text.strip()
    try:
        return datetime.combine(date.fromisoformat(text), time.min, tzinfo=timezone.utc)
    except ValueError:
        return as_utc(datetime.fromisoformat(text))
