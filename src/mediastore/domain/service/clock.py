"""Time source used by every component that reasons about days or TTLs.

Injected so tests can move time forward and cross day boundaries
deterministically.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware instant."""

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
