"""Accrual and watch-progress data models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping

DEFAULT_SPEED_MODIFIERS: dict[float, float] = {
    0.75: 1.05,
    1.0: 1.0,
    1.25: 0.9,
    1.5: 0.8,
}


class AccrualState(str, enum.Enum):
    """Lifecycle of one accrual attachment."""
    IDLE = "idle"
    BUFFERING = "buffering"
    EARNING = "earning"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class AccrualConfig:
    """Rate, timing and speed-modifier settings for reward accrual.

    flush_fractional controls whether flush() hands the caller the full
    remainder (fraction included) or only its whole-unit part.
    """
    base_rate_per_second: float = 0.5
    buffer_seconds: float = 0.8
    tick_seconds: float = 0.1
    speed_modifiers: dict[float, float] = field(
        default_factory=lambda: dict(DEFAULT_SPEED_MODIFIERS)
    )
    flush_fractional: bool = True


@dataclass(frozen=True)
class SpeedIndicator:
    """What the player shows next to the playback speed control."""
    speed: float
    modifier: float
    is_modified: bool


@dataclass
class WatchProgressRecord:
    """Durable watch state for one video.

    Invariant: watched_segments is sorted by start, non-overlapping and
    minimal (touching segments are merged). total_watched is the sum of
    the segment lengths.
    """
    video_id: str
    last_position: float = 0.0
    watched_segments: list[tuple[float, float]] = field(default_factory=list)
    total_watched: float = 0.0
    reward_credited: float = 0.0
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "video_id": self.video_id,
            "last_position": self.last_position,
            "watched_segments": [[s, e] for s, e in self.watched_segments],
            "total_watched": self.total_watched,
            "reward_credited": self.reward_credited,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WatchProgressRecord:
        """Rebuild a record from its stored form.

        Raises KeyError, TypeError or ValueError on malformed input.
        """
        return cls(
            video_id=str(data["video_id"]),
            last_position=float(data.get("last_position", 0.0)),
            watched_segments=[
                (float(s), float(e)) for s, e in data.get("watched_segments", [])
            ],
            total_watched=float(data.get("total_watched", 0.0)),
            reward_credited=float(data.get("reward_credited", 0.0)),
            duration=float(data.get("duration", 0.0)),
        )

    def copy(self) -> WatchProgressRecord:
        return WatchProgressRecord(
            video_id=self.video_id,
            last_position=self.last_position,
            watched_segments=list(self.watched_segments),
            total_watched=self.total_watched,
            reward_credited=self.reward_credited,
            duration=self.duration,
        )
