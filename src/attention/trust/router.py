"""Event router — turns attention events into trust score deltas.

Rules:
- Unverified events are penalised (a fixed negative delta), not ignored.
- Verified events earn a per-kind base delta; watch events scale with
  duration in seconds.
- Risk is subtracted after the base delta, so a high enough risk turns
  even a boost into a loss. Risk dominates reward.
"""

from __future__ import annotations

from typing import Optional, Union

from attention.models.attention import AttentionEvent, EventKind
from attention.policy.resolver import AttentionPolicy, default_policy
from attention.trust.store import TrustScoreStore


class EventRouter:
    """Routes attention events to a TrustScoreStore."""

    def __init__(
        self,
        store: TrustScoreStore,
        policy: Optional[AttentionPolicy] = None,
    ) -> None:
        self._store = store
        self._policy = policy or default_policy()

    @property
    def store(self) -> TrustScoreStore:
        return self._store

    def delta_for(self, event: AttentionEvent) -> float:
        """Compute the score delta for an event without applying it."""
        if not event.verified:
            return -self._policy.unverified_penalty()

        delta = self._policy.event_delta(event.kind)
        if event.kind == EventKind.WATCH:
            delta *= event.duration
        return delta - event.risk * self._policy.risk_weight()

    def route_event(self, event: AttentionEvent) -> float:
        """Apply an event to the store and return the new score."""
        return self._store.mutate(self.delta_for(event))

    def route(
        self,
        kind: Union[EventKind, str],
        duration: float = 1.0,
        verified: bool = True,
        risk: float = 0.0,
    ) -> float:
        """Build an event from its parts and route it.

        Raises ValueError if kind is not a known event kind, or if duration
        or risk makes the delta NaN or infinite.
        """
        event = AttentionEvent(
            kind=EventKind(kind),
            duration=duration,
            verified=verified,
            risk=risk,
        )
        return self.route_event(event)
