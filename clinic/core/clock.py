# clinic/core/clock.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock, always UTC aware."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant (tests, replays)."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self.instant = instant

    def now(self) -> datetime:
        return self.instant


_system_clock = SystemClock()


def get_clock() -> Clock:
    """
    FastAPI dependency. Override it with
    `app.dependency_overrides[get_clock] = lambda: FixedClock(...)`.
    """
    return _system_clock
