"""Spotify source playlist listing."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sonora.dependencies import get_track_fetcher, require_caller, require_spotify_token
from sonora.errors import AuthenticationRequiredError, DependencyError
from sonora.integrations.spotify_tracks import (
    SpotifyAuthError,
    SpotifyFetchError,
    SpotifyTrackFetcher,
)
from sonora.logging import get_logger
from sonora.schemas import SourcePlaylistEntry, SourcePlaylistsResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/spotify", tags=["Spotify"])


@router.get("/playlists", response_model=SourcePlaylistsResponse)
async def list_source_playlists(
    user_id: str = Depends(require_caller),
    access_token: str = Depends(require_spotify_token),
    fetcher: SpotifyTrackFetcher = Depends(get_track_fetcher),
) -> SourcePlaylistsResponse:
    try:
        playlists = await fetcher.list_user_playlists(access_token)
    except SpotifyAuthError as exc:
        raise AuthenticationRequiredError("Spotify token expired. Please reconnect.") from exc
    except SpotifyFetchError as exc:
        logger.warning("Spotify playlist listing failed for %s: %s", user_id, exc)
        raise DependencyError("Failed to fetch playlists", details=str(exc)) from exc

    return SourcePlaylistsResponse(
        playlists=[
            SourcePlaylistEntry(
                id=item.id,
                name=item.name,
                description=item.description,
                image=item.image,
                track_count=item.track_count,
                owner=item.owner,
            )
            for item in playlists
        ]
    )


__all__ = ["router"]
