"""Tests for trust tier derivation — inclusive lower bounds, no hysteresis."""

import pytest

from attention.models.attention import TrustTier
from attention.policy.resolver import AttentionPolicy
from attention.trust.tiers import trust_tier


class TestTierBoundaries:
    @pytest.mark.parametrize("score, tier", [
        (0.3, TrustTier.COLD),
        (19.99, TrustTier.COLD),
        (20.00, TrustTier.WARM),
        (49.99, TrustTier.WARM),
        (50.00, TrustTier.ACTIVE),
        (79.99, TrustTier.ACTIVE),
        (80.00, TrustTier.TRUSTED),
        (100.0, TrustTier.TRUSTED),
    ])
    def test_default_thresholds(self, score, tier) -> None:
        assert trust_tier(score) == tier

    def test_crossing_down_changes_tier_immediately(self) -> None:
        assert trust_tier(50.0) == TrustTier.ACTIVE
        assert trust_tier(49.99) == TrustTier.WARM
        assert trust_tier(50.0) == TrustTier.ACTIVE

    def test_custom_thresholds(self) -> None:
        policy = AttentionPolicy({"tiers": {"warm": 5.0, "active": 10.0, "trusted": 15.0}})
        assert trust_tier(4.99, policy) == TrustTier.COLD
        assert trust_tier(5.0, policy) == TrustTier.WARM
        assert trust_tier(15.0, policy) == TrustTier.TRUSTED

    def test_tier_values_are_wire_strings(self) -> None:
        assert [t.value for t in TrustTier] == ["cold", "warm", "active", "trusted"]
