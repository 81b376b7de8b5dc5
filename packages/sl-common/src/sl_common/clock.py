"""
Clock and scheduler abstraction for SafeLine.

Cooldown checks, retry backoff and session-expiry timers all read time
through a :class:`Clock` so that tests can substitute :class:`ManualClock`
and advance virtual time deterministically instead of sleeping.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol


class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled before it fires."""

    def cancel(self) -> None: ...


class Clock(Protocol):
    """Time source and one-shot timer scheduler."""

    def monotonic(self) -> float:
        """Seconds on a monotonic scale (only differences are meaningful)."""
        ...

    def now(self) -> datetime:
        """Current wall-clock time (UTC)."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for *seconds*."""
        ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run ``callback(*args)`` once after *delay* seconds."""
        ...


class SystemClock:
    """Real time, backed by :mod:`time` and the running asyncio loop."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, callback, *args)


@dataclass(order=True)
class _ManualTimer:
    """A pending callback on a :class:`ManualClock`."""

    due: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: tuple[Any, ...] = field(compare=False, default=())
    cancelled: bool = field(compare=False, default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """Virtual clock for tests.

    Time only moves when :meth:`advance` is called (or when a coroutine
    awaits :meth:`sleep`, which advances by the requested amount and
    records it in :attr:`sleeps`).  Timers fire synchronously, in due
    order, while time is advanced past them.

    Args:
        start: Wall-clock instant corresponding to monotonic ``0``.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._elapsed = 0.0
        self._timers: list[_ManualTimer] = []
        self._seq = itertools.count()
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self._elapsed

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        # Still yield so concurrently scheduled tasks get a turn.
        await asyncio.sleep(0)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        timer = _ManualTimer(
            due=self._elapsed + max(delay, 0.0),
            seq=next(self._seq),
            callback=callback,
            args=args,
        )
        heapq.heappush(self._timers, timer)
        return timer

    def advance(self, seconds: float) -> None:
        """Move virtual time forward, firing every timer that comes due."""
        target = self._elapsed + max(seconds, 0.0)
        while self._timers and self._timers[0].due <= target:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._elapsed = timer.due
            timer.callback(*timer.args)
        self._elapsed = target

    @property
    def pending_timers(self) -> int:
        """Number of scheduled, not-yet-fired, non-cancelled timers."""
        return sum(1 for t in self._timers if not t.cancelled)
