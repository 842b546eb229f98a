"""Policy resolver — single source for every tunable of the attention engine.

Parameters live in config/attention_params.json. Each top-level section
("score", "events", "tiers", "rewards", "reporting", "accrual") is merged
over the built-in defaults, so a partial file only overrides what it names.
Components never read the JSON themselves; they ask the resolver.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Optional

from attention.models.attention import EventKind, TrustTier
from attention.models.progress import AccrualConfig

PARAMS_FILENAME = "attention_params.json"

DEFAULT_PARAMS: dict[str, dict[str, Any]] = {
    "score": {
        "initial": 1.0,
        "floor": 0.3,
        "ceiling": 100.0,
        "decay_per_minute": 0.02,
    },
    "events": {
        "deltas": {
            "watch": 0.05,
            "like": 0.10,
            "comment": 0.30,
            "gift": 0.60,
            "boost": 1.20,
        },
        "unverified_penalty": 0.1,
        "risk_weight": 0.5,
    },
    "tiers": {
        "warm": 20.0,
        "active": 50.0,
        "trusted": 80.0,
    },
    "rewards": {
        "multiplier": 10,
        "min_per_event": 1,
        "resync_interval_seconds": 3.0,
    },
    "reporting": {
        "debounce_ms": 500,
        "sentence_comment_words": 5,
        "insightful_comment_words": 15,
        "watch_completed_ms": 30000,
    },
    "accrual": {
        "base_rate_per_second": 0.5,
        "buffer_seconds": 0.8,
        "tick_seconds": 0.1,
        "speed_modifiers": {"0.75": 1.05, "1": 1.0, "1.25": 0.9, "1.5": 0.8},
        "flush_fractional": True,
    },
}


class AttentionPolicy:
    """Resolves engine parameters from a params dict.

    Usage:
        policy = AttentionPolicy.from_config_dir(config_dir)
        floor, ceiling = policy.score_bounds()

        # or, without any config file:
        policy = AttentionPolicy.default()
    """

    def __init__(self, params: dict[str, Any]) -> None:
        self._params = _merge_defaults(params)

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> AttentionPolicy:
        """Load params from config_dir/attention_params.json.

        Raises FileNotFoundError if the file is missing and
        json.JSONDecodeError if it is not valid JSON.
        """
        path = Path(config_dir) / PARAMS_FILENAME
        with path.open("r", encoding="utf-8") as handle:
            return cls(json.load(handle))

    @classmethod
    def default(cls) -> AttentionPolicy:
        return cls({})

    @property
    def params(self) -> dict[str, Any]:
        return copy.deepcopy(self._params)

    # ------------------------------------------------------------------
    # Score
    # ------------------------------------------------------------------

    def initial_score(self) -> float:
        return float(self._params["score"]["initial"])

    def score_bounds(self) -> tuple[float, float]:
        """Return (floor, ceiling)."""
        score = self._params["score"]
        return float(score["floor"]), float(score["ceiling"])

    def decay_per_minute(self) -> float:
        return float(self._params["score"]["decay_per_minute"])

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def event_delta(self, kind: EventKind) -> float:
        """Base score delta for one event of this kind (per second for watch)."""
        return float(self._params["events"]["deltas"][kind.value])

    def unverified_penalty(self) -> float:
        return float(self._params["events"]["unverified_penalty"])

    def risk_weight(self) -> float:
        return float(self._params["events"]["risk_weight"])

    # ------------------------------------------------------------------
    # Tiers and rewards
    # ------------------------------------------------------------------

    def tier_thresholds(self) -> list[tuple[TrustTier, float]]:
        """Return (tier, inclusive lower bound) pairs, highest tier first.

        COLD is the implicit band below the lowest threshold.
        """
        tiers = self._params["tiers"]
        return [
            (TrustTier.TRUSTED, float(tiers["trusted"])),
            (TrustTier.ACTIVE, float(tiers["active"])),
            (TrustTier.WARM, float(tiers["warm"])),
        ]

    def reward_multiplier(self) -> float:
        return float(self._params["rewards"]["multiplier"])

    def min_reward_per_event(self) -> int:
        return int(self._params["rewards"]["min_per_event"])

    def resync_interval_seconds(self) -> float:
        return float(self._params["rewards"]["resync_interval_seconds"])

    # ------------------------------------------------------------------
    # Outbound reporting
    # ------------------------------------------------------------------

    def report_debounce_seconds(self) -> float:
        return float(self._params["reporting"]["debounce_ms"]) / 1000.0

    def comment_word_thresholds(self) -> tuple[int, int]:
        """Return (sentence, insightful) minimum word counts."""
        reporting = self._params["reporting"]
        return (
            int(reporting["sentence_comment_words"]),
            int(reporting["insightful_comment_words"]),
        )

    def watch_completed_ms(self) -> int:
        return int(self._params["reporting"]["watch_completed_ms"])

    # ------------------------------------------------------------------
    # Accrual
    # ------------------------------------------------------------------

    def accrual_config(self) -> AccrualConfig:
        accrual = self._params["accrual"]
        return AccrualConfig(
            base_rate_per_second=float(accrual["base_rate_per_second"]),
            buffer_seconds=float(accrual["buffer_seconds"]),
            tick_seconds=float(accrual["tick_seconds"]),
            speed_modifiers={
                float(speed): float(mod)
                for speed, mod in accrual["speed_modifiers"].items()
            },
            flush_fractional=bool(accrual["flush_fractional"]),
        )

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def validate(self) -> list[str]:
        """Check parameter invariants. Returns a list of errors; empty = valid."""
        errors: list[str] = []

        floor, ceiling = self.score_bounds()
        if floor < 0:
            errors.append(f"score.floor must be >= 0, got {floor}")
        if floor >= ceiling:
            errors.append(f"score.floor {floor} must be < score.ceiling {ceiling}")
        initial = self.initial_score()
        if not floor <= initial <= ceiling:
            errors.append(f"score.initial {initial} must lie in [{floor}, {ceiling}]")
        if self.decay_per_minute() < 0:
            errors.append("score.decay_per_minute must be >= 0")

        for kind in EventKind:
            if self.event_delta(kind) < 0:
                errors.append(f"events.deltas.{kind.value} must be >= 0")
        if self.unverified_penalty() < 0:
            errors.append("events.unverified_penalty must be >= 0")
        if self.risk_weight() < 0:
            errors.append("events.risk_weight must be >= 0")

        bounds = [bound for _, bound in reversed(self.tier_thresholds())]
        if any(low >= high for low, high in zip(bounds, bounds[1:])):
            errors.append(f"tier thresholds must be strictly increasing, got {bounds}")
        if bounds[0] <= floor or bounds[-1] > ceiling:
            errors.append(f"tier thresholds must lie in ({floor}, {ceiling}]")

        if self.min_reward_per_event() < 0:
            errors.append("rewards.min_per_event must be >= 0")
        if self.resync_interval_seconds() <= 0:
            errors.append("rewards.resync_interval_seconds must be > 0")

        sentence, insightful = self.comment_word_thresholds()
        if sentence >= insightful:
            errors.append("reporting.sentence_comment_words must be < insightful_comment_words")

        config = self.accrual_config()
        if config.base_rate_per_second <= 0:
            errors.append("accrual.base_rate_per_second must be > 0")
        if config.buffer_seconds < 0:
            errors.append("accrual.buffer_seconds must be >= 0")
        if config.tick_seconds <= 0:
            errors.append("accrual.tick_seconds must be > 0")
        if not config.speed_modifiers:
            errors.append("accrual.speed_modifiers must not be empty")
        for speed, modifier in config.speed_modifiers.items():
            if speed <= 0 or modifier <= 0:
                errors.append(f"accrual.speed_modifiers[{speed}] must be positive")

        return errors


def _merge_defaults(params: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(DEFAULT_PARAMS)
    for section, values in params.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(copy.deepcopy(values))
        else:
            merged[section] = copy.deepcopy(values)
    return merged


_DEFAULT: Optional[AttentionPolicy] = None


def default_policy() -> AttentionPolicy:
    """Shared built-in policy for components constructed without one."""
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = AttentionPolicy.default()
    return _DEFAULT
