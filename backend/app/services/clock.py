"""Time source for reminder scheduling. Injected so runs can be pinned to a fixed instant."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in the configured reminder timezone."""

    def __init__(self, tz: tzinfo | str = timezone.utc) -> None:
        self._tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class FixedClock:
    """Always returns the same instant. Used by manual runs for a specific day and by tests."""

    def __init__(self, instant: datetime) -> None:
        self._instant = instant

    def now(self) -> datetime:
        return self._instant
