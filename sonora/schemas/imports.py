"""Pydantic schemas for the playlist import endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImportRequestBody(_CamelModel):
    source_playlist_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("sourcePlaylistId", "playlistId", "source_playlist_id"),
        serialization_alias="sourcePlaylistId",
    )
    playlist_name: Optional[str] = None
    create_new_playlist: Optional[bool] = None
    target_playlist_id: Optional[str] = None
    session_id: Optional[str] = None

    def wants_new_playlist(self) -> bool:
        """An absent flag means "new playlist" unless a target playlist was named."""

        if self.create_new_playlist is not None:
            return self.create_new_playlist
        return not (self.target_playlist_id or "").strip()


class TrackErrorPayload(_CamelModel):
    track: str
    reason: str


class ImportResultPayload(_CamelModel):
    total: int
    imported: int
    failed: int
    skipped: int
    errors: List[TrackErrorPayload] = Field(default_factory=list)
    total_errors: int = 0
    errors_truncated: bool = False


class ImportResponse(_CamelModel):
    success: bool = True
    playlist_id: str
    session_id: str
    results: ImportResultPayload


class ImportProgressResponse(_CamelModel):
    current: int
    total: int
    imported: int
    failed: int
    skipped: int
    current_track: str = ""
    errors: List[str] = Field(default_factory=list)


class SourcePlaylistEntry(_CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    track_count: int = 0
    owner: str


class SourcePlaylistsResponse(_CamelModel):
    playlists: List[SourcePlaylistEntry] = Field(default_factory=list)


class CatalogSongPayload(_CamelModel):
    id: Optional[str] = None
    title: str
    artist: str
    album: Optional[str] = None
    url: Optional[str] = None
    preview_url: Optional[str] = None
    duration: Optional[str] = None
    year: Optional[str] = None
    image: Optional[str] = None


class PlaylistSongEntry(_CamelModel):
    position: int
    song: CatalogSongPayload


class PlaylistSongsResponse(_CamelModel):
    playlist_id: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    songs: List[PlaylistSongEntry] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    version: str
