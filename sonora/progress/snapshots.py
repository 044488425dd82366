"""Progress snapshot model and store protocol for import sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Protocol

__all__ = [
    "ImportProgressStore",
    "ProgressNotFoundError",
    "ProgressSnapshot",
    "ProgressStoreError",
]


@dataclass(slots=True, frozen=True)
class ProgressSnapshot:
    """Point-in-time view of one import run.

    ``current`` counts items the run has started; the outcome counters only
    cover finished items, so ``imported + failed + skipped <= current <= total``.
    """

    current: int = 0
    total: int = 0
    imported: int = 0
    failed: int = 0
    skipped: int = 0
    current_track: str = ""
    errors: tuple[str, ...] = field(default_factory=tuple)

    def to_payload(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "total": self.total,
            "imported": self.imported,
            "failed": self.failed,
            "skipped": self.skipped,
            "currentTrack": self.current_track,
            "errors": list(self.errors),
        }


class ProgressStoreError(RuntimeError):
    """Base error for progress store failures."""


class ProgressNotFoundError(ProgressStoreError):
    """Raised when a session has no progress entry (unknown, finished or expired)."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"no import in progress for session {session_id!r}")
        self.session_id = session_id


class ImportProgressStore(Protocol):
    """Keyed store shared between the import worker and progress pollers.

    Writes are last-write-wins per session; readers may see a stale or
    already-cleared entry.
    """

    @property
    def ttl(self) -> timedelta:
        ...

    def set(self, session_id: str, snapshot: ProgressSnapshot) -> None:
        ...

    def get(self, session_id: str) -> ProgressSnapshot:
        ...

    def clear(self, session_id: str) -> bool:
        ...

    def purge_expired(self, *, reference: datetime | None = None) -> int:
        ...

    def count(self) -> int:
        ...
