"""Progress tracking for running playlist imports."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from sonora.config import AppConfig

from .snapshots import (
    ImportProgressStore,
    ProgressNotFoundError,
    ProgressSnapshot,
    ProgressStoreError,
)
from .store_memory import MemoryImportProgressStore


def get_progress_store(
    config: AppConfig,
    *,
    now_fn: Callable[[], datetime] | None = None,
) -> ImportProgressStore:
    ttl = timedelta(seconds=max(1, config.imports.progress_ttl_seconds))
    return MemoryImportProgressStore(ttl=ttl, now_fn=now_fn)


__all__ = [
    "ImportProgressStore",
    "MemoryImportProgressStore",
    "ProgressNotFoundError",
    "ProgressSnapshot",
    "ProgressStoreError",
    "get_progress_store",
]
