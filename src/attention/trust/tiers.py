"""Trust tier derivation. A pure step function of the score, no hysteresis."""

from __future__ import annotations

from typing import Optional

from attention.models.attention import TrustTier
from attention.policy.resolver import AttentionPolicy, default_policy


def trust_tier(score: float, policy: Optional[AttentionPolicy] = None) -> TrustTier:
    """Return the tier for a score. Thresholds are inclusive lower bounds."""
    policy = policy or default_policy()
    for tier, lower_bound in policy.tier_thresholds():
        if score >= lower_bound:
            return tier
    return TrustTier.COLD
