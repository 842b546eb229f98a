"""Trust scoring — decaying score store, event routing and tier derivation."""

from attention.trust.router import EventRouter
from attention.trust.store import TrustScoreStore
from attention.trust.tiers import trust_tier

__all__ = [
    "EventRouter",
    "TrustScoreStore",
    "trust_tier",
]
