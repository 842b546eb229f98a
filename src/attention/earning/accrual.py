"""Accrual engine — continuous reward accrual for one playing item.

Lifecycle:
  idle -> buffering -> earning -> paused | stopped

- start() arms a buffer delay (anti-swipe). Only content that stays on
  screen past the buffer starts earning.
- While earning, a fixed-period tick adds
      base_rate * elapsed_seconds * speed_modifier
  to a sub-unit accumulator, using the scheduler clock for elapsed time.
- Whole units are emitted as soon as the accumulator reaches 1; the
  fractional remainder carries over to the next tick.
- pause() keeps the accumulator, stop() discards it, flush() drains it.

All timers are cancelled synchronously, so a stop() or flush() between two
ticks is complete before the next tick could fire.
"""

from __future__ import annotations

import math
from typing import Callable, Optional

from attention.models.progress import AccrualConfig, AccrualState, SpeedIndicator
from attention.scheduling import Scheduler, TaskHandle

# Accumulator digits kept before taking whole units; absorbs float noise
# from summing many small tick increments.
_UNIT_PRECISION = 9


class AccrualEngine:
    """Buffered, speed-modified reward accrual.

    Usage:
        engine = AccrualEngine(on_earned=wallet.credit, scheduler=scheduler)
        engine.start()          # video became visible and is playing
        engine.pause()          # seeking
        engine.start()
        engine.flush()          # leaving the view
        engine.close()
    """

    def __init__(
        self,
        on_earned: Callable[[float], None],
        scheduler: Scheduler,
        config: Optional[AccrualConfig] = None,
        playback_speed: float = 1.0,
    ) -> None:
        self._on_earned = on_earned
        self._scheduler = scheduler
        self._config = config or AccrualConfig()
        self.playback_speed = playback_speed

        self._state = AccrualState.IDLE
        self._accumulated = 0.0
        self._last_tick = 0.0
        self._buffer_timer: Optional[TaskHandle] = None
        self._tick_timer: Optional[TaskHandle] = None

    def __enter__(self) -> AccrualEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def state(self) -> AccrualState:
        return self._state

    @property
    def is_earning(self) -> bool:
        return self._state == AccrualState.EARNING

    @property
    def accumulated(self) -> float:
        """Raw sub-unit accumulator, not yet handed to the caller."""
        return self._accumulated

    @property
    def pending(self) -> int:
        """Whole units currently sitting in the accumulator."""
        return math.floor(round(self._accumulated, _UNIT_PRECISION))

    # ------------------------------------------------------------------
    # Speed modifiers
    # ------------------------------------------------------------------

    def speed_modifier(self) -> float:
        """Modifier of the configured speed closest to the playback speed.

        Ties go to the slower speed.
        """
        modifiers = self._config.speed_modifiers
        if not modifiers:
            return 1.0
        speeds = sorted(modifiers)
        closest = speeds[0]
        for speed in speeds[1:]:
            if abs(speed - self.playback_speed) < abs(closest - self.playback_speed):
                closest = speed
        return modifiers.get(closest) or 1.0

    def speed_indicator(self) -> SpeedIndicator:
        return SpeedIndicator(
            speed=self.playback_speed,
            modifier=self.speed_modifier(),
            is_modified=self.playback_speed != 1.0,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin buffering. No-op while already buffering or earning."""
        if self._buffer_timer is not None or self._tick_timer is not None:
            return
        self._state = AccrualState.BUFFERING
        self._buffer_timer = self._scheduler.call_later(
            self._config.buffer_seconds, self._begin_earning
        )

    def pause(self) -> None:
        """Stop earning but keep partial progress."""
        self._cancel_timers()
        if self._state != AccrualState.IDLE:
            self._state = AccrualState.PAUSED

    def stop(self) -> None:
        """Stop earning and discard partial progress."""
        self._cancel_timers()
        self._accumulated = 0.0
        self._state = AccrualState.STOPPED

    def flush(self) -> float:
        """Hand any remainder to the caller immediately and return it.

        With flush_fractional the whole remainder is emitted, fraction
        included. Otherwise only its whole-unit part is emitted and the
        fraction is dropped. The accumulator is zero afterwards either way.
        """
        if self._config.flush_fractional:
            amount = self._accumulated
        else:
            amount = float(math.floor(round(self._accumulated, _UNIT_PRECISION)))
        self._accumulated = 0.0
        if amount > 0:
            self._on_earned(amount)
        return amount

    def close(self) -> None:
        """Cancel all timers. Safe to call repeatedly."""
        self._cancel_timers()

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    def _begin_earning(self) -> None:
        self._buffer_timer = None
        self._state = AccrualState.EARNING
        self._last_tick = self._scheduler.now()
        self._tick_timer = self._scheduler.call_every(
            self._config.tick_seconds, self._tick
        )

    def _tick(self) -> None:
        now = self._scheduler.now()
        elapsed = max(0.0, now - self._last_tick)
        self._last_tick = now

        self._accumulated += (
            self._config.base_rate_per_second * elapsed * self.speed_modifier()
        )
        whole = math.floor(round(self._accumulated, _UNIT_PRECISION))
        if whole >= 1:
            self._accumulated = max(0.0, self._accumulated - whole)
            self._on_earned(whole)

    def _cancel_timers(self) -> None:
        if self._buffer_timer is not None:
            self._buffer_timer.cancel()
            self._buffer_timer = None
        if self._tick_timer is not None:
            self._tick_timer.cancel()
            self._tick_timer = None
