"""Utility functions for the application."""

from __future__ import annotations

import datetime
from typing import Any


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def parse_datetime(value: Any) -> datetime.datetime:
    """Coerce a stored or submitted instant into an aware datetime.

    Accepts datetimes (including Firestore's ``DatetimeWithNanoseconds``),
    Firestore timestamps and ISO 8601 strings with an optional ``Z`` suffix.
    Naive values are taken to be UTC.

    Raises:
        ValueError: If the value cannot be interpreted as an instant.
    """
    if isinstance(value, datetime.datetime):
        parsed = value
    elif hasattr(value, "to_datetime"):
        parsed = value.to_datetime()
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.datetime.fromisoformat(text)
    else:
        raise ValueError(f"Not a valid datetime: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def sort_timestamp(value: Any) -> float:
    """Sort key for optional timestamps; missing values sort last."""
    if value is None:
        return float("inf")
    try:
        return parse_datetime(value).timestamp()
    except ValueError:
        return float("inf")
