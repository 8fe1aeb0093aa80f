"""Date helpers shared by the store, renderer and publisher.

Digests are keyed by the local calendar date of their epoch-millisecond
timestamp. The same key drives the archive file name (the slug).
"""

from __future__ import annotations

from datetime import date, datetime


def digest_slug(value: datetime) -> str:
    """Return the archive slug for a datetime.

    Examples:
        >>> digest_slug(datetime(2024, 1, 15, 10, 0))
        '2024-01-15'
    """
    return value.strftime("%Y-%m-%d")


def local_datetime(timestamp_ms: int | float) -> datetime:
    """Convert an epoch-millisecond timestamp to a naive local datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000)


def calendar_key(timestamp_ms: int | float) -> date:
    """Return the local calendar date used as a digest's identity."""
    return local_datetime(timestamp_ms).date()


def to_timestamp_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def format_display_date(value: datetime) -> str:
    """Format a date the way it is shown to readers, e.g. "January 15th, 2024"."""
    return f"{value.strftime('%B')} {_ordinal(value.day)}, {value.year}"


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"
