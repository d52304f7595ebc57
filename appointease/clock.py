"""Time source shared by the notification and sharing services.

Services receive a ``Clock`` instead of calling ``datetime.now`` so tests
can pin the current instant.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def fixed_clock(instant: datetime) -> Clock:
    """Clock frozen at ``instant``."""
    frozen = as_utc(instant)
    return lambda: frozen
