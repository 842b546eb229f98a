"""Tests for the attention policy resolver — loading, defaults and invariants."""

import json

import pytest
from pathlib import Path

from attention.models.attention import EventKind, TrustTier
from attention.policy.resolver import AttentionPolicy, default_policy


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def policy() -> AttentionPolicy:
    return AttentionPolicy.from_config_dir(CONFIG_DIR)


class TestLoading:
    def test_config_matches_builtin_defaults(self, policy) -> None:
        assert policy.params == AttentionPolicy.default().params

    def test_missing_config_dir(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            AttentionPolicy.from_config_dir(tmp_path)

    def test_partial_file_keeps_other_defaults(self, tmp_path) -> None:
        (tmp_path / "attention_params.json").write_text(
            json.dumps({"score": {"floor": 1.0}}), encoding="utf-8"
        )
        policy = AttentionPolicy.from_config_dir(tmp_path)
        assert policy.score_bounds() == (1.0, 100.0)
        assert policy.decay_per_minute() == 0.02
        assert policy.event_delta(EventKind.BOOST) == 1.2

    def test_params_are_copied(self, policy) -> None:
        params = policy.params
        params["score"]["floor"] = 99.0
        assert policy.score_bounds()[0] == 0.3

    def test_default_policy_is_shared(self) -> None:
        assert default_policy() is default_policy()


class TestAccessors:
    def test_score(self, policy) -> None:
        assert policy.initial_score() == 1.0
        assert policy.score_bounds() == (0.3, 100.0)
        assert policy.decay_per_minute() == 0.02

    def test_event_deltas(self, policy) -> None:
        assert policy.event_delta(EventKind.WATCH) == 0.05
        assert policy.event_delta(EventKind.COMMENT) == 0.3
        assert policy.unverified_penalty() == 0.1
        assert policy.risk_weight() == 0.5

    def test_tier_thresholds_highest_first(self, policy) -> None:
        assert policy.tier_thresholds() == [
            (TrustTier.TRUSTED, 80.0),
            (TrustTier.ACTIVE, 50.0),
            (TrustTier.WARM, 20.0),
        ]

    def test_rewards_and_reporting(self, policy) -> None:
        assert policy.reward_multiplier() == 10
        assert policy.min_reward_per_event() == 1
        assert policy.resync_interval_seconds() == 3.0
        assert policy.report_debounce_seconds() == 0.5
        assert policy.comment_word_thresholds() == (5, 15)
        assert policy.watch_completed_ms() == 30000

    def test_accrual_config(self, policy) -> None:
        config = policy.accrual_config()
        assert config.base_rate_per_second == 0.5
        assert config.buffer_seconds == 0.8
        assert config.tick_seconds == 0.1
        assert config.speed_modifiers == {0.75: 1.05, 1.0: 1.0, 1.25: 0.9, 1.5: 0.8}
        assert config.flush_fractional is True


class TestValidation:
    def test_shipped_config_is_valid(self, policy) -> None:
        assert policy.validate() == []

    def test_inverted_bounds(self) -> None:
        errors = AttentionPolicy({"score": {"floor": 100.0, "ceiling": 50.0}}).validate()
        assert any("score.floor" in e for e in errors)

    def test_unordered_tiers(self) -> None:
        errors = AttentionPolicy({"tiers": {"warm": 60.0, "active": 50.0, "trusted": 80.0}}).validate()
        assert any("strictly increasing" in e for e in errors)

    def test_negative_event_delta(self) -> None:
        errors = AttentionPolicy({"events": {"deltas": {
            "watch": 0.05, "like": -1.0, "comment": 0.3, "gift": 0.6, "boost": 1.2,
        }}}).validate()
        assert errors == ["events.deltas.like must be >= 0"]

    def test_bad_accrual(self) -> None:
        errors = AttentionPolicy({"accrual": {
            "tick_seconds": 0, "speed_modifiers": {"1": 0},
        }}).validate()
        assert "accrual.tick_seconds must be > 0" in errors
        assert any("speed_modifiers" in e for e in errors)
