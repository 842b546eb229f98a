"""Trust score store — the decaying UPS scalar.

Model:
  score(t) = clamp(score(t0) - decay_per_minute * minutes(t - t0), floor, ceiling)

Invariants enforced:
- floor <= score <= ceiling at all times (defaults 0.3 and 100).
- Only finite deltas are applied. NaN or infinity raises ValueError and
  leaves the score untouched.
- Decay is linear and pull-based: it is applied lazily on read(), never by
  a background timer mutating hidden state.
- mutate() restarts the decay clock, so time that elapsed before a
  mutation is never charged a second time on the next read.
- No persistence. The score is a soft session signal that resets with the
  process; the authoritative trust figure lives server-side.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Optional

from attention.policy.resolver import AttentionPolicy, default_policy

logger = logging.getLogger(__name__)


class TrustScoreStore:
    """Owns one decaying trust score.

    Usage:
        store = TrustScoreStore(policy, clock=scheduler.now)
        store.mutate(0.5)
        current = store.read()
    """

    def __init__(
        self,
        policy: Optional[AttentionPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        initial: Optional[float] = None,
    ) -> None:
        policy = policy or default_policy()
        self._floor, self._ceiling = policy.score_bounds()
        self._decay_per_minute = policy.decay_per_minute()
        self._clock = clock
        self._lock = threading.Lock()
        start = policy.initial_score() if initial is None else initial
        if not math.isfinite(start):
            raise ValueError(f"initial score must be finite, got {start}")
        self._score = self._clamp(start)
        self._last_tick = clock()

    @property
    def bounds(self) -> tuple[float, float]:
        return self._floor, self._ceiling

    def read(self) -> float:
        """Apply decay since the last observation and return the score (2 dp)."""
        with self._lock:
            return self._read_locked()

    def mutate(self, delta: float) -> float:
        """Add delta to the score, clamp, and return the fresh score (2 dp).

        Raises ValueError if delta is NaN or infinite.
        """
        if not math.isfinite(delta):
            raise ValueError(f"score delta must be finite, got {delta}")
        with self._lock:
            previous = self._score
            self._score = self._clamp(self._score + delta)
            self._last_tick = self._clock()
            logger.debug("trust score %.4f -> %.4f (delta %+.4f)", previous, self._score, delta)
            return self._read_locked()

    def peek(self) -> float:
        """Return the stored score (2 dp) without applying decay."""
        with self._lock:
            return round(self._score, 2)

    def _read_locked(self) -> float:
        now = self._clock()
        minutes = max(0.0, now - self._last_tick) / 60.0
        self._score = self._clamp(self._score - minutes * self._decay_per_minute)
        self._last_tick = now
        return round(self._score, 2)

    def _clamp(self, value: float) -> float:
        return max(self._floor, min(self._ceiling, value))
