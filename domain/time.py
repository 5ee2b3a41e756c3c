"""
Domain time utilities (pure).

Centralized timestamp validation helpers.

Every timestamp stored on a Lead, LeadFile or LeadEvent is UTC. Behavior and
error messages must remain consistent across the domain model.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces that a timestamp is UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime. Injected as the default clock."""

    return datetime.now(timezone.utc)


def from_epoch_millis(value: int | float) -> datetime:
    """Convert a JavaScript-style epoch milliseconds value to an aware UTC datetime."""

    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
