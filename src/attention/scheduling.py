"""Cancellable timers for the buffer delay, accrual tick and score resync.

Every time-driven component takes a Scheduler instead of touching real
timers. Production code runs on AsyncioScheduler; tests and simulations run
on VirtualScheduler and move time forward explicitly with advance().

Ordering rules (both implementations):
- Callbacks fire strictly in due-time order; equal due times fire in the
  order they were scheduled.
- cancel() takes effect immediately. A cancelled task never fires again,
  even if it was already due within the same advance().
- cancel() on an already-cancelled or already-fired task is a no-op.
- Repeating tasks fire at start + n * period, so due times never drift
  from the grid however many ticks have passed.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, Optional, Protocol


class TaskHandle:
    """Handle to a scheduled one-shot or repeating callback."""

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None) -> None:
        self._cancelled = False
        self._on_cancel = on_cancel

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()
            self._on_cancel = None


class Scheduler(Protocol):
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TaskHandle:
        ...

    def call_every(self, period: float, callback: Callable[[], None]) -> TaskHandle:
        ...


# (origin, period, ticks fired so far) for a repeating task.
_Repeat = tuple[float, float, int]


def _check_delay(delay: float) -> None:
    if delay < 0:
        raise ValueError(f"delay must be >= 0, got {delay}")


def _check_period(period: float) -> None:
    if period <= 0:
        raise ValueError(f"period must be > 0, got {period}")


class VirtualScheduler:
    """Deterministic scheduler driven by an explicit virtual clock.

    Usage:
        scheduler = VirtualScheduler()
        scheduler.call_later(0.8, on_buffer_done)
        scheduler.advance(1.0)   # fires on_buffer_done at t=0.8
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._queue: list[tuple[float, int, TaskHandle, Callable[[], None], Optional[_Repeat]]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TaskHandle:
        _check_delay(delay)
        handle = TaskHandle()
        self._push(self._now + delay, handle, callback, None)
        return handle

    def call_every(self, period: float, callback: Callable[[], None]) -> TaskHandle:
        _check_period(period)
        handle = TaskHandle()
        self._push(self._now + period, handle, callback, (self._now, period, 1))
        return handle

    @property
    def pending(self) -> int:
        """Number of scheduled, not-cancelled tasks."""
        return sum(1 for entry in self._queue if not entry[2].cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every task that falls due."""
        _check_delay(seconds)
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback, repeat = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            if repeat is not None:
                origin, period, count = repeat
                self._push(origin + (count + 1) * period, handle, callback,
                           (origin, period, count + 1))
            callback()
        self._now = target

    def _push(
        self,
        due: float,
        handle: TaskHandle,
        callback: Callable[[], None],
        repeat: Optional[_Repeat],
    ) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback, repeat))


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    Must be used from the loop's own thread; without an explicit loop it
    must be constructed inside a running coroutine. Repeating tasks re-arm
    after each callback, so a slow callback delays the next tick rather
    than stacking ticks up.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TaskHandle:
        _check_delay(delay)
        timer = self._loop.call_later(delay, callback)
        return TaskHandle(on_cancel=timer.cancel)

    def call_every(self, period: float, callback: Callable[[], None]) -> TaskHandle:
        _check_period(period)
        current: list[asyncio.TimerHandle] = []

        def _cancel() -> None:
            for timer in current:
                timer.cancel()

        handle = TaskHandle(on_cancel=_cancel)

        def _fire() -> None:
            current.clear()
            if handle.cancelled:
                return
            current.append(self._loop.call_later(period, _fire))
            callback()

        current.append(self._loop.call_later(period, _fire))
        return handle
