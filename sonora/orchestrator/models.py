"""Request, result and state models for playlist import runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import random
import string
import time
from typing import Any

_SESSION_ALPHABET = string.digits + string.ascii_lowercase


class ImportState(str, Enum):
    """Lifecycle of a single import run."""

    FETCHING = "fetching"
    RESOLVING_TARGET = "resolving_target"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ABORTED = "aborted"


def generate_session_id() -> str:
    """Return an opaque id such as ``import_1718030000000_k3j9x0a1b``."""

    suffix = "".join(random.choices(_SESSION_ALPHABET, k=9))
    return f"import_{int(time.time() * 1000)}_{suffix}"


@dataclass(slots=True, frozen=True)
class ImportRequest:
    """Caller supplied parameters for one import run."""

    user_id: str
    source_playlist_id: str
    access_token: str
    create_new_playlist: bool = True
    playlist_name: str | None = None
    target_playlist_id: str | None = None
    session_id: str | None = None


@dataclass(slots=True, frozen=True)
class TrackError:
    """One failed or skipped track with a human readable reason."""

    track: str
    reason: str

    def describe(self) -> str:
        return f"{self.track}: {self.reason}"


@dataclass(slots=True)
class ImportResult:
    """Final summary of an import run.

    Counters are exact. ``errors`` holds at most the configured cap while
    ``total_errors`` keeps the full count.
    """

    total: int = 0
    imported: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[TrackError] = field(default_factory=list)
    total_errors: int = 0

    @property
    def errors_truncated(self) -> bool:
        return self.total_errors > len(self.errors)

    def to_payload(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "imported": self.imported,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": [{"track": item.track, "reason": item.reason} for item in self.errors],
            "totalErrors": self.total_errors,
            "errorsTruncated": self.errors_truncated,
        }


@dataclass(slots=True, frozen=True)
class ImportOutcome:
    """What a completed run hands back to the HTTP layer."""

    playlist_id: str
    session_id: str
    result: ImportResult


__all__ = [
    "ImportOutcome",
    "ImportRequest",
    "ImportResult",
    "ImportState",
    "TrackError",
    "generate_session_id",
]
