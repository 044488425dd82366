"""Playlist import orchestration."""

from .models import (
    ImportOutcome,
    ImportRequest,
    ImportResult,
    ImportState,
    TrackError,
    generate_session_id,
)
from .playlist_import import (
    ImportValidationError,
    PlaylistImportOrchestrator,
    TargetPlaylistNotFoundError,
)

__all__ = [
    "ImportOutcome",
    "ImportRequest",
    "ImportResult",
    "ImportState",
    "ImportValidationError",
    "PlaylistImportOrchestrator",
    "TargetPlaylistNotFoundError",
    "TrackError",
    "generate_session_id",
]
