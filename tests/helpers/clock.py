"""Deterministic clocks for timestamp-sensitive tests."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

EPOCH = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@dataclass
class TickingClock:
    """Returns strictly increasing timestamps, one ``step`` apart."""

    current: datetime = EPOCH
    step: timedelta = timedelta(milliseconds=1)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __call__(self) -> datetime:
        with self._lock:
            self.current += self.step
            return self.current


@dataclass
class FrozenClock:
    current: datetime = EPOCH

    def __call__(self) -> datetime:
        return self.current
