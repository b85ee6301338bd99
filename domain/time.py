"""
Domain time utilities (pure).

Centralized timestamp validation and the default clock.

Every timestamp stored on an Invoice or Donation goes through
`require_utc_timestamp`, so comparisons such as `now > expires_at` never mix
naive and aware datetimes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces the requirement that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def utc_now() -> datetime:
    """Default clock: current time as an aware UTC datetime."""

    return datetime.now(timezone.utc)


def parse_utc_datetime(value: object) -> datetime:
    """
    Parse a stored timestamp into a timezone-aware UTC datetime.

    Accepts datetimes, ISO-8601 strings (with or without a trailing 'Z') and
    unix epoch seconds (int or numeric string, as LND reports them).
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            dt = datetime.fromtimestamp(int(text), tz=timezone.utc)
        else:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
