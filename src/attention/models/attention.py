"""Attention event, trust tier and boundary payload models.

Attention events are transient: they are built by the caller, consumed once
by the event router, and never persisted. The score they move is a soft
session signal; the authoritative trust state lives server-side and is only
ever observed here through a BalanceSnapshot.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


class EventKind(str, enum.Enum):
    """Attention events that move the local trust score."""
    WATCH = "watch"
    LIKE = "like"
    COMMENT = "comment"
    GIFT = "gift"
    BOOST = "boost"


class TrustTier(str, enum.Enum):
    """Ordered trust bands derived from the score. Never stored."""
    COLD = "cold"
    WARM = "warm"
    ACTIVE = "active"
    TRUSTED = "trusted"


class InteractionType(str, enum.Enum):
    """Interaction kinds understood by the validation boundary."""
    LIKE = "like"
    EMOJI_COMMENT = "emoji_comment"
    SENTENCE_COMMENT = "sentence_comment"
    INSIGHTFUL_COMMENT = "insightful_comment"
    VIDEO_WATCH = "video_watch"
    SAVE = "save"


@dataclass(frozen=True)
class AttentionEvent:
    """A single attention event.

    duration is seconds for watch events and is ignored for the others.
    risk is a caller-supplied suspicion score, conventionally in [0, 1].
    """
    kind: EventKind
    duration: float = 1.0
    verified: bool = True
    risk: float = 0.0


@dataclass(frozen=True)
class InteractionReport:
    """Outbound validation payload.

    Delivery is best-effort. The local score and balance never depend on
    whether the boundary accepted it.
    """
    session_id: str
    interaction_type: InteractionType
    target_id: Optional[str] = None
    duration_ms: Optional[int] = None
    content_hash: Optional[str] = None
    context_hash: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """Return the wire dict, omitting unset optional fields."""
        payload: dict[str, Any] = {
            "session_id": self.session_id,
            "interaction_type": self.interaction_type.value,
        }
        optional = {
            "target_id": self.target_id,
            "duration_ms": self.duration_ms,
            "content_hash": self.content_hash,
            "context_hash": self.context_hash,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        return payload


@dataclass(frozen=True)
class BalanceSnapshot:
    """Server-side balance and trust figures at one point in time."""
    balance: float = 0.0
    trust_state: str = TrustTier.COLD.value
    ups: float = 0.5
    account_type: str = "user"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> BalanceSnapshot:
        """Build a snapshot, substituting defaults for missing or empty fields."""
        default = cls()
        return cls(
            balance=float(data.get("balance") or default.balance),
            trust_state=str(data.get("trust_state") or default.trust_state),
            ups=float(data.get("ups") or default.ups),
            account_type=str(data.get("account_type") or default.account_type),
        )
