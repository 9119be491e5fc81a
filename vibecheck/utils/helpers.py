"""
Helper utilities for VibeCheck.

This module provides UTC time handling and small general utilities.
"""

import uuid
from typing import Iterator, Optional, Union
from datetime import date, datetime, time, timedelta, timezone


def generate_id() -> str:
    """
    Generate a unique ID.

    Returns:
        Unique ID string.
    """
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """
    Current instant as a naive UTC datetime.

    All timestamps in the service are naive UTC, matching what SQLite
    hands back.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive input is assumed UTC."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_utc(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime into a naive UTC datetime.

    Accepts a trailing "Z", explicit offsets, date-only strings and the
    space-separated form ClickHouse emits.

    Args:
        value: Value to parse.

    Returns:
        Parsed datetime or None for empty input.

    Raises:
        ValueError: If the string is not ISO-8601.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)

    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return to_naive_utc(parsed)


def day_start(d: Union[date, datetime]) -> datetime:
    """Midnight UTC at the start of the given day."""
    if isinstance(d, datetime):
        d = d.date()
    return datetime.combine(d, time.min)


def iter_days(start: date, end: date) -> Iterator[date]:
    """
    Iterate calendar days in the half-open range [start, end).
    """
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))
