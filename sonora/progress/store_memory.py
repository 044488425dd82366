"""In-memory progress store for single-process deployments."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from threading import Lock

from .snapshots import ImportProgressStore, ProgressNotFoundError, ProgressSnapshot

__all__ = ["MemoryImportProgressStore"]


@dataclass(slots=True, frozen=True)
class _Entry:
    snapshot: ProgressSnapshot
    updated_at: datetime


class MemoryImportProgressStore(ImportProgressStore):
    """Thread-safe in-memory implementation of :class:`ImportProgressStore`.

    Entries idle for longer than ``ttl`` are dropped on access, which bounds
    the leak from runs that died without clearing their session.
    """

    def __init__(
        self,
        *,
        ttl: timedelta,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("progress TTL must be positive")
        self._ttl = ttl
        self._now = now_fn or (lambda: datetime.now(UTC))
        self._entries: dict[str, _Entry] = {}
        self._lock = Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def set(self, session_id: str, snapshot: ProgressSnapshot) -> None:
        if not session_id:
            raise ValueError("session_id must be provided")
        entry = _Entry(snapshot=snapshot, updated_at=self._now())
        with self._lock:
            self._entries[session_id] = entry

    def get(self, session_id: str) -> ProgressSnapshot:
        reference = self._now()
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                raise ProgressNotFoundError(session_id)
            if reference - entry.updated_at >= self._ttl:
                del self._entries[session_id]
                raise ProgressNotFoundError(session_id)
            return entry.snapshot

    def clear(self, session_id: str) -> bool:
        with self._lock:
            return self._entries.pop(session_id, None) is not None

    def purge_expired(self, *, reference: datetime | None = None) -> int:
        moment = reference or self._now()
        with self._lock:
            return self._purge_expired(reference=moment)

    def _purge_expired(self, *, reference: datetime) -> int:
        expired = [
            key
            for key, entry in self._entries.items()
            if reference - entry.updated_at >= self._ttl
        ]
        for key in expired:
            self._entries.pop(key, None)
        return len(expired)

    def count(self) -> int:
        with self._lock:
            self._purge_expired(reference=self._now())
            return len(self._entries)
