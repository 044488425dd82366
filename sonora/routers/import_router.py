"""Endpoints that start a playlist import and report its progress."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from sonora.dependencies import (
    get_import_orchestrator,
    get_import_progress_store,
    require_caller,
    require_spotify_token,
)
from sonora.errors import (
    AuthenticationRequiredError,
    InternalServerError,
    NotFoundError,
    ValidationAppError,
)
from sonora.integrations.spotify_tracks import SpotifyAuthError, SpotifyFetchError
from sonora.logging import get_logger
from sonora.logging_events import log_event
from sonora.orchestrator import (
    ImportRequest,
    ImportValidationError,
    PlaylistImportOrchestrator,
    TargetPlaylistNotFoundError,
)
from sonora.progress import ImportProgressStore, ProgressNotFoundError
from sonora.schemas import (
    ImportProgressResponse,
    ImportRequestBody,
    ImportResponse,
    ImportResultPayload,
)
from sonora.services.playlist_writer import PlaylistCreationError

logger = get_logger(__name__)

router = APIRouter(tags=["Imports"])


@router.post("/import", response_model=ImportResponse)
async def import_playlist(
    body: ImportRequestBody,
    user_id: str = Depends(require_caller),
    access_token: str = Depends(require_spotify_token),
    orchestrator: PlaylistImportOrchestrator = Depends(get_import_orchestrator),
) -> ImportResponse:
    request = ImportRequest(
        user_id=user_id,
        source_playlist_id=(body.source_playlist_id or "").strip(),
        access_token=access_token,
        create_new_playlist=body.wants_new_playlist(),
        playlist_name=body.playlist_name,
        target_playlist_id=body.target_playlist_id,
        session_id=(body.session_id or "").strip() or None,
    )

    try:
        outcome = await orchestrator.run(request)
    except ImportValidationError as exc:
        raise ValidationAppError(str(exc)) from exc
    except SpotifyAuthError as exc:
        raise AuthenticationRequiredError(
            "Spotify token expired. Please reconnect.", details=str(exc)
        ) from exc
    except SpotifyFetchError as exc:
        raise InternalServerError("Failed to import playlist", details=str(exc)) from exc
    except PlaylistCreationError as exc:
        raise InternalServerError("Failed to create playlist", details=str(exc)) from exc
    except TargetPlaylistNotFoundError as exc:
        raise NotFoundError("Target playlist not found") from exc

    log_event(
        logger,
        "api.import.completed",
        component="router.import",
        status="ok",
        entity_id=outcome.session_id,
        playlist_id=outcome.playlist_id,
        total=outcome.result.total,
    )
    return ImportResponse(
        success=True,
        playlist_id=outcome.playlist_id,
        session_id=outcome.session_id,
        results=ImportResultPayload.model_validate(outcome.result.to_payload()),
    )


@router.get("/import-progress", response_model=ImportProgressResponse)
async def import_progress(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    store: ImportProgressStore = Depends(get_import_progress_store),
) -> ImportProgressResponse:
    key = (session_id or "").strip()
    if not key:
        raise ValidationAppError("Session ID is required")
    try:
        snapshot = store.get(key)
    except ProgressNotFoundError as exc:
        raise NotFoundError("Progress not found") from exc
    return ImportProgressResponse.model_validate(snapshot.to_payload())


__all__ = ["router"]
