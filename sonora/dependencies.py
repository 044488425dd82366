"""FastAPI dependency providers."""

from __future__ import annotations

from typing import Any

from fastapi import Depends, Request

from sonora.errors import AuthenticationRequiredError
from sonora.integrations.contracts import AccessTokenProvider, CallerIdentityProvider
from sonora.integrations.spotify_tracks import SpotifyTrackFetcher
from sonora.logging import get_logger
from sonora.orchestrator import PlaylistImportOrchestrator
from sonora.progress import ImportProgressStore
from sonora.services.playlist_writer import PlaylistWriter

logger = get_logger(__name__)


def _state_component(request: Request, name: str) -> Any:
    component = getattr(request.app.state, name, None)
    if component is None:
        raise RuntimeError(f"{name} is not configured on the application")
    return component


def get_import_progress_store(request: Request) -> ImportProgressStore:
    return _state_component(request, "progress_store")


def get_playlist_writer(request: Request) -> PlaylistWriter:
    return _state_component(request, "playlist_writer")


def get_track_fetcher(request: Request) -> SpotifyTrackFetcher:
    return _state_component(request, "track_fetcher")


def get_import_orchestrator(request: Request) -> PlaylistImportOrchestrator:
    return _state_component(request, "import_orchestrator")


def get_identity_provider(request: Request) -> CallerIdentityProvider:
    return _state_component(request, "identity_provider")


def get_token_provider(request: Request) -> AccessTokenProvider:
    return _state_component(request, "token_provider")


def require_caller(
    request: Request,
    identity: CallerIdentityProvider = Depends(get_identity_provider),
) -> str:
    user_id = identity.current_caller(request)
    if not user_id:
        raise AuthenticationRequiredError()
    return user_id


async def require_spotify_token(
    request: Request,
    tokens: AccessTokenProvider = Depends(get_token_provider),
) -> str:
    token = await tokens.get_access_token(request)
    if not token:
        logger.info(
            "Spotify token missing for request",
            extra={"event": "spotify.token_missing", "path": request.url.path},
        )
        raise AuthenticationRequiredError("Not connected to Spotify")
    return token


__all__ = [
    "get_identity_provider",
    "get_import_orchestrator",
    "get_import_progress_store",
    "get_playlist_writer",
    "get_token_provider",
    "get_track_fetcher",
    "require_caller",
    "require_spotify_token",
]
