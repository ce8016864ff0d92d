"""Kernel time – wall and monotonic clocks.

Decisions stamp condition expiries and audit events with ``now()``; cache
TTLs run on ``monotonic()`` so wall-clock jumps never revive an entry.
"""
from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...
    def monotonic(self) -> float: ...


class SystemClock:
    """UTC wall time and ``time.monotonic``."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def monotonic(self) -> float:
        return time.monotonic()


class FrozenClock:
    """Manually driven clock for tests.

    ``monotonic()`` starts at zero and moves together with ``now()``.
    """

    def __init__(self, start: datetime) -> None:
        self._now = start
        self._ticks = 0.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._ticks

    def advance(self, **delta: int | float) -> None:
        """Move both clocks forward, e.g. ``advance(minutes=5)``."""
        step = timedelta(**delta)
        self._now += step
        self._ticks += step.total_seconds()


__all__ = ["Clock", "FrozenClock", "SystemClock"]
