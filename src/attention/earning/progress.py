"""Watch progress ledger — per-video watched segments and credited reward.

The ledger answers one question for the reward pipeline: how much of a
playback range has this viewer NOT already been credited for? Re-watching
the same seconds (seek-back, looping) earns nothing.

Storage is a single JSON object keyed by video id, written to the
KeyValueStore after every mutation and loaded once at construction.
Unreadable storage is treated as an empty ledger; a failed write is logged
and the in-memory state stays authoritative until the next successful one.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Optional

from attention.boundary import KeyValueStore
from attention.models.progress import WatchProgressRecord

logger = logging.getLogger(__name__)

STORAGE_KEY = "attention_watch_progress"


def merge_segments(segments: list[tuple[float, float]]) -> list[tuple[float, float]]:
    """Sort by start and fold overlapping or touching segments together."""
    if not segments:
        return []
    ordered = sorted(segments, key=lambda seg: seg[0])
    merged = [ordered[0]]
    for start, end in ordered[1:]:
        last_start, last_end = merged[-1]
        if start <= last_end:
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def uncovered_length(
    segments: list[tuple[float, float]], start: float, end: float
) -> float:
    """Length of [start, end) not covered by sorted, merged segments."""
    new_time = 0.0
    position = start
    for seg_start, seg_end in segments:
        if position >= end:
            break
        if position < seg_start:
            gap_end = min(seg_start, end)
            new_time += gap_end - position
            position = gap_end
        if position < seg_end:
            position = seg_end
    if position < end:
        new_time += end - position
    return max(0.0, new_time)


class WatchProgressLedger:
    """Durable per-video watch progress.

    Usage:
        ledger = WatchProgressLedger(JsonFileKeyValueStore(path))
        fresh = ledger.get_new_watch_time("v1", 5.0, 15.0)
        ledger.mark_segment_watched("v1", 5.0, 15.0)
        ledger.save_progress("v1", 15.0, 60.0)
    """

    def __init__(self, store: KeyValueStore, storage_key: str = STORAGE_KEY) -> None:
        self._store = store
        self._storage_key = storage_key
        self._lock = threading.Lock()
        self._records: dict[str, WatchProgressRecord] = self._load()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_progress(self, video_id: str) -> Optional[WatchProgressRecord]:
        """Return a copy of the record, or None."""
        with self._lock:
            record = self._records.get(video_id)
            return record.copy() if record else None

    def video_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._records)

    def get_resume_position(self, video_id: str) -> float:
        with self._lock:
            record = self._records.get(video_id)
            return record.last_position if record else 0.0

    def get_new_watch_time(self, video_id: str, start: float, end: float) -> float:
        """Seconds of [start, end) not yet covered by watched segments."""
        with self._lock:
            record = self._records.get(video_id)
            if record is None or not record.watched_segments:
                return max(0.0, end - start)
            return uncovered_length(record.watched_segments, start, end)

    def completion_ratio(self, video_id: str) -> float:
        """Fraction of the known duration watched, capped at 1.0."""
        with self._lock:
            record = self._records.get(video_id)
            if record is None or record.duration <= 0:
                return 0.0
            return min(1.0, record.total_watched / record.duration)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def save_progress(self, video_id: str, position: float, duration: float = 0.0) -> None:
        """Record the resume position, creating the record if needed."""
        with self._lock:
            record = self._records.get(video_id)
            if record is None:
                record = WatchProgressRecord(video_id=video_id)
                self._records[video_id] = record
            record.last_position = position
            if duration > 0:
                record.duration = duration
            self._persist()

    def mark_segment_watched(self, video_id: str, start: float, end: float) -> None:
        """Add [start, end) to the watched set. Empty or inverted ranges are ignored."""
        if end <= start:
            return
        with self._lock:
            record = self._records.get(video_id)
            if record is None:
                record = WatchProgressRecord(video_id=video_id, last_position=end)
                self._records[video_id] = record
            record.watched_segments = merge_segments(
                record.watched_segments + [(start, end)]
            )
            record.total_watched = sum(e - s for s, e in record.watched_segments)
            self._persist()

    def update_reward_credited(self, video_id: str, amount: float) -> None:
        """Add to the credited reward. Unknown videos are ignored."""
        with self._lock:
            record = self._records.get(video_id)
            if record is None:
                return
            record.reward_credited += amount
            self._persist()

    def clear_progress(self, video_id: str) -> None:
        with self._lock:
            self._records.pop(video_id, None)
            self._persist()

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        payload = {vid: record.to_dict() for vid, record in self._records.items()}
        try:
            self._store.set(
                self._storage_key, json.dumps(payload, sort_keys=True, ensure_ascii=False)
            )
        except Exception as exc:
            logger.error("Failed to persist watch progress, keeping it in memory: %s", exc)

    def _load(self) -> dict[str, WatchProgressRecord]:
        raw = self._store.get(self._storage_key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError as exc:
            logger.error("Failed to load watch progress, starting empty: %s", exc)
            return {}
        if not isinstance(data, dict):
            logger.error("Failed to load watch progress: expected an object, got %s",
                         type(data).__name__)
            return {}

        records: dict[str, WatchProgressRecord] = {}
        for video_id, entry in data.items():
            try:
                record = WatchProgressRecord.from_dict(entry)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed watch progress for %s: %s", video_id, exc)
                continue
            record.watched_segments = merge_segments(
                [(s, e) for s, e in record.watched_segments if e > s]
            )
            record.total_watched = sum(e - s for s, e in record.watched_segments)
            records[str(video_id)] = record
        return records
