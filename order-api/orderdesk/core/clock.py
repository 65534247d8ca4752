"""
Injectable time source.

Sweeps and services never read the wall clock themselves: routes resolve
"now" through the ``get_clock`` dependency and pass it down explicitly, so
recovery/notify/purge can be driven deterministically from tests.

All values are naive UTC, matching how timestamps are stored in the DB.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


def utcnow_naive() -> datetime:
    # DB stores naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock(Protocol):
    def now(self) -> datetime:
        ...  # pragma: no cover


class SystemClock:
    """Production clock."""

    def now(self) -> datetime:
        return utcnow_naive()


class FixedClock:
    """
    Test clock, frozen until advanced.

    Usage:
        clock = FixedClock(datetime(2025, 1, 1, 12, 0))
        clock.advance(minutes=5)
    """

    def __init__(self, fixed_dt: datetime) -> None:
        if fixed_dt.tzinfo is not None:
            fixed_dt = fixed_dt.astimezone(timezone.utc).replace(tzinfo=None)
        self._fixed_dt = fixed_dt

    def now(self) -> datetime:
        return self._fixed_dt

    def advance(self, **delta: float) -> None:
        self._fixed_dt = self._fixed_dt + timedelta(**delta)
