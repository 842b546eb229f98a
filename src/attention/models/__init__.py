"""Core data models for the attention engine."""

from attention.models.attention import (
    AttentionEvent,
    BalanceSnapshot,
    EventKind,
    InteractionReport,
    InteractionType,
    TrustTier,
)
from attention.models.progress import (
    AccrualConfig,
    AccrualState,
    SpeedIndicator,
    WatchProgressRecord,
)

__all__ = [
    "AttentionEvent",
    "BalanceSnapshot",
    "EventKind",
    "InteractionReport",
    "InteractionType",
    "TrustTier",
    "AccrualConfig",
    "AccrualState",
    "SpeedIndicator",
    "WatchProgressRecord",
]
