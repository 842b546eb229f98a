"""Trust context — the session-scoped façade the UI layer talks to.

Responsibilities:
- Own a local session id, generated once per instance.
- Expose the current score (ups), its trust tier and a local reward balance.
- Resync the score on a fixed interval so idle decay becomes visible even
  when no events arrive.
- Translate semantic actions (comment, watch, like, save) into score events
  and best-effort validation reports.

Reward model: every registered event adds
    max(min_reward_per_event, floor(new_score * reward_multiplier))
to the local balance. Reward scales with trust, but never drops below the
per-event minimum, even at the trust floor.

Boundary calls (validation reports, server sessions, balance reads) never
roll back or gate local state. Their failures are logged and swallowed.
"""

from __future__ import annotations

import hashlib
import logging
import math
import uuid
from typing import Callable, Optional, Union

from attention.boundary import (
    AttentionReporter,
    BalanceSource,
    NullReporter,
    SessionBoundary,
)
from attention.models.attention import (
    BalanceSnapshot,
    EventKind,
    InteractionReport,
    InteractionType,
    TrustTier,
)
from attention.policy.resolver import AttentionPolicy, default_policy
from attention.scheduling import Scheduler, TaskHandle
from attention.trust.router import EventRouter
from attention.trust.tiers import trust_tier

logger = logging.getLogger(__name__)

ScoreListener = Callable[[float], None]


def content_hash(text: str) -> str:
    """Short, stable fingerprint of user-submitted text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


class TrustContext:
    """Session façade over the trust score and local reward ledger.

    Usage:
        context = TrustContext(router, scheduler, policy, reporter=reporter)
        context.start()
        reward = context.register_attention("watch", 3)
        context.report_like(server_session_id, "video-1")
        context.close()
    """

    def __init__(
        self,
        router: EventRouter,
        scheduler: Scheduler,
        policy: Optional[AttentionPolicy] = None,
        reporter: Optional[AttentionReporter] = None,
        sessions: Optional[SessionBoundary] = None,
        balance_source: Optional[BalanceSource] = None,
    ) -> None:
        self._router = router
        self._scheduler = scheduler
        self._policy = policy or default_policy()
        self._reporter = reporter or NullReporter()
        self._sessions = sessions
        self._balance_source = balance_source

        self.session_id = uuid.uuid4().hex
        self._server_session_id: Optional[str] = None
        self._ups = router.store.read()
        self._balance = 0
        self._verified: Optional[BalanceSnapshot] = None
        self._listeners: list[ScoreListener] = []
        self._last_report: dict[tuple[str, str], float] = {}
        self._resync_task: Optional[TaskHandle] = None

    def __enter__(self) -> TrustContext:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def ups(self) -> float:
        return self._ups

    @property
    def trust_state(self) -> TrustTier:
        return trust_tier(self._ups, self._policy)

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def verified(self) -> Optional[BalanceSnapshot]:
        """Last server-side snapshot from reconcile(), if any."""
        return self._verified

    @property
    def server_session_id(self) -> Optional[str]:
        return self._server_session_id

    def subscribe(self, listener: ScoreListener) -> Callable[[], None]:
        """Call listener with the score on every refresh. Returns an unsubscribe."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Resync
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin periodic score resync. No-op if already running."""
        if self._resync_task is not None:
            return
        self._resync_task = self._scheduler.call_every(
            self._policy.resync_interval_seconds(), self.refresh
        )

    def close(self) -> None:
        """Stop periodic resync. Safe to call repeatedly."""
        if self._resync_task is not None:
            self._resync_task.cancel()
            self._resync_task = None

    def refresh(self) -> float:
        """Re-read the score (applying decay) and notify listeners."""
        self._set_ups(self._router.store.read())
        return self._ups

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def register_attention(
        self,
        kind: Union[EventKind, str],
        duration: float = 1.0,
        verified: bool = True,
        risk: float = 0.0,
    ) -> int:
        """Route an event, credit the local balance and return the reward."""
        new_score = self._router.route(kind, duration, verified, risk)
        reward = max(
            self._policy.min_reward_per_event(),
            math.floor(new_score * self._policy.reward_multiplier()),
        )
        self._balance += reward
        self._set_ups(new_score)
        return reward

    def report_comment(self, session_id: str, target_id: str, text: str) -> None:
        self.register_attention(EventKind.COMMENT)

        word_count = len(text.split())
        sentence_words, insightful_words = self._policy.comment_word_thresholds()
        if word_count >= insightful_words:
            interaction = InteractionType.INSIGHTFUL_COMMENT
        elif word_count >= sentence_words:
            interaction = InteractionType.SENTENCE_COMMENT
        else:
            interaction = InteractionType.EMOJI_COMMENT

        self._send_report(InteractionReport(
            session_id=session_id,
            target_id=target_id,
            interaction_type=interaction,
            content_hash=content_hash(text),
            metadata={"word_count": word_count},
        ))

    def report_video_watch(self, session_id: str, target_id: str, duration_ms: int) -> None:
        self.register_attention(EventKind.WATCH, duration=duration_ms / 1000.0)
        self._send_report(InteractionReport(
            session_id=session_id,
            target_id=target_id,
            interaction_type=InteractionType.VIDEO_WATCH,
            duration_ms=duration_ms,
            metadata={"completed": duration_ms >= self._policy.watch_completed_ms()},
        ))

    def report_like(self, session_id: str, target_id: str) -> None:
        self.register_attention(EventKind.LIKE)
        self._send_report(InteractionReport(
            session_id=session_id,
            target_id=target_id,
            interaction_type=InteractionType.LIKE,
        ))

    def report_save(self, session_id: str, target_id: str) -> None:
        # Saves score exactly like likes.
        self.register_attention(EventKind.LIKE)
        self._send_report(InteractionReport(
            session_id=session_id,
            target_id=target_id,
            interaction_type=InteractionType.SAVE,
        ))

    # ------------------------------------------------------------------
    # Boundaries
    # ------------------------------------------------------------------

    def start_session(self) -> Optional[str]:
        """Open a server session. Returns its id, or None on failure."""
        if self._sessions is None:
            return None
        try:
            session_id = self._sessions.start()
        except Exception as exc:
            logger.warning("Session start failed: %s", exc)
            return None
        self._server_session_id = session_id or None
        return self._server_session_id

    def end_session(self, abnormal: bool = False) -> None:
        """End the server session, if any. The id is cleared even on failure."""
        session_id = self._server_session_id
        if session_id is None or self._sessions is None:
            return
        try:
            self._sessions.end(session_id, abnormal)
        except Exception as exc:
            logger.warning("Session end failed for %s: %s", session_id, exc)
        finally:
            self._server_session_id = None

    def reconcile(self) -> Optional[BalanceSnapshot]:
        """Fetch the server-side figures. Local ups and balance are untouched."""
        if self._balance_source is None:
            return None
        try:
            snapshot = BalanceSnapshot.from_mapping(self._balance_source.fetch())
        except Exception as exc:
            logger.warning("Balance fetch failed: %s", exc)
            return None
        self._verified = snapshot
        return snapshot

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set_ups(self, score: float) -> None:
        self._ups = score
        for listener in list(self._listeners):
            try:
                listener(score)
            except Exception as exc:
                logger.warning("Score listener %r failed: %s", listener, exc)

    def _send_report(self, report: InteractionReport) -> None:
        if not report.session_id:
            logger.debug("No session, %s not reported", report.interaction_type.value)
            return

        key = (report.interaction_type.value, report.target_id or "none")
        now = self._scheduler.now()
        window = self._policy.report_debounce_seconds()
        last = self._last_report.get(key)
        if last is not None and now - last < window:
            return
        self._last_report = {
            k: t for k, t in self._last_report.items() if now - t < window
        }
        self._last_report[key] = now

        try:
            self._reporter.report(report)
        except Exception as exc:
            logger.debug("Interaction report dropped: %s", exc)
