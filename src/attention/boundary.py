"""Capability interfaces for everything outside the engine.

The engine depends only on these protocols, never on a concrete transport:
- AttentionReporter: fire-and-forget interaction validation.
- SessionBoundary: server session start/end.
- BalanceSource: server-side balance/trust read.
- KeyValueStore: string-keyed blob persistence for the watch ledger.

Only the in-process implementations live here. Network transports are
outside this package.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

from attention.models.attention import InteractionReport

logger = logging.getLogger(__name__)


class AttentionReporter(Protocol):
    def report(self, report: InteractionReport) -> None:
        """Hand a report to the validation boundary. Must not block on the result."""
        ...


class SessionBoundary(Protocol):
    def start(self) -> Optional[str]:
        """Open a server session. Returns its id, or None if none was opened."""
        ...

    def end(self, session_id: str, abnormal: bool = False) -> None:
        ...


class BalanceSource(Protocol):
    def fetch(self) -> Mapping[str, Any]:
        """Return {balance, trust_state, ups, account_type}."""
        ...


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class NullReporter:
    """Reporter that drops every report. Used when no boundary is wired."""

    def report(self, report: InteractionReport) -> None:
        return None


class InMemoryKeyValueStore:
    """Dict-backed store; contents are lost with the process."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileKeyValueStore:
    """Store persisted as a single JSON object file.

    Each write replaces the file atomically (temp file + os.replace), so a
    crash mid-write leaves the previous contents intact. A missing,
    unreadable or non-object file is treated as empty.
    """

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = Path(storage_path)
        self._data: dict[str, str] = self._load()

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    def keys(self) -> list[str]:
        return sorted(self._data)

    def _load(self) -> dict[str, str]:
        if not self._storage_path.exists():
            return {}
        try:
            with self._storage_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable store %s: %s", self._storage_path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object store %s", self._storage_path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._storage_path.parent, prefix=".kv-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, sort_keys=True, ensure_ascii=False)
            os.replace(tmp_name, self._storage_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
