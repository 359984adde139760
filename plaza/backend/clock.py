"""Day key sources for login and encounter dedupe."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Protocol


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class DayClock(Protocol):
    def today(self) -> str:
        """Return the current calendar day as ``YYYY-MM-DD``."""


class SystemDayClock:
    """UTC wall clock. The whole process shares one day boundary."""

    def today(self) -> str:
        return _utc_today().isoformat()


class FixedDayClock:
    def __init__(self, day: str | None = None) -> None:
        self._day = date.fromisoformat(day) if day else _utc_today()

    def today(self) -> str:
        return self._day.isoformat()

    def set(self, day: str) -> None:
        self._day = date.fromisoformat(day)

    def advance(self, days: int = 1) -> str:
        self._day = self._day + timedelta(days=days)
        return self.today()
