"""Read back internal playlists written by imports."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sonora.dependencies import get_playlist_writer, require_caller
from sonora.errors import NotFoundError
from sonora.schemas import CatalogSongPayload, PlaylistSongEntry, PlaylistSongsResponse
from sonora.services.playlist_writer import PlaylistWriter

router = APIRouter(prefix="/playlists", tags=["Playlists"])


@router.get("/{playlist_id}/songs", response_model=PlaylistSongsResponse)
async def list_playlist_songs(
    playlist_id: str,
    user_id: str = Depends(require_caller),
    writer: PlaylistWriter = Depends(get_playlist_writer),
) -> PlaylistSongsResponse:
    playlist = await writer.get_playlist(playlist_id)
    # Someone else's playlist looks exactly like a missing one.
    if playlist is None or playlist.user_id != user_id:
        raise NotFoundError("Playlist not found")

    songs = await writer.list_songs(playlist.id)
    return PlaylistSongsResponse(
        playlist_id=playlist.id,
        name=playlist.name,
        description=playlist.description,
        created_at=playlist.created_at,
        songs=[
            PlaylistSongEntry(
                position=entry.position,
                song=CatalogSongPayload.model_validate(entry.song.to_payload()),
            )
            for entry in songs
        ],
    )


__all__ = ["router"]
