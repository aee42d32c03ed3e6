"""ISO-8601 timestamp helpers.

Timestamps are compared as strings; the ISO format sorts correctly as text.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import TypeVar

T = TypeVar("T")

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def max_iso(values: Iterable[str]) -> str:
    """Latest timestamp in ``values``, or ``""`` when there are none."""
    return max(values, default="")


def sort_by_iso_desc(items: list[T], key: Callable[[T], str]) -> list[T]:
    """Sort ``items`` in place, newest first. Ties keep their relative order."""
    items.sort(key=key, reverse=True)
    return items


def format_iso(dt: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` (UTC, millisecond precision)."""
    dt = dt.astimezone(UTC)
    return f"{dt.strftime('%Y-%m-%dT%H:%M:%S')}.{dt.microsecond // 1000:03d}Z"


def epoch_ms_to_iso(ms: float) -> str:
    """``""`` when ``ms`` lies outside the range ``datetime`` can represent."""
    try:
        return format_iso(_EPOCH + timedelta(milliseconds=int(ms)))
    except (OverflowError, ValueError):
        return ""


def epoch_seconds_to_iso(seconds: float) -> str:
    return epoch_ms_to_iso(seconds * 1000)

