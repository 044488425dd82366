"""Request and response schemas for the Sonora API."""

from .imports import (
    CatalogSongPayload,
    HealthResponse,
    ImportProgressResponse,
    ImportRequestBody,
    ImportResponse,
    ImportResultPayload,
    PlaylistSongEntry,
    PlaylistSongsResponse,
    SourcePlaylistEntry,
    SourcePlaylistsResponse,
    TrackErrorPayload,
)

__all__ = [
    "CatalogSongPayload",
    "HealthResponse",
    "ImportProgressResponse",
    "ImportRequestBody",
    "ImportResponse",
    "ImportResultPayload",
    "PlaylistSongEntry",
    "PlaylistSongsResponse",
    "SourcePlaylistEntry",
    "SourcePlaylistsResponse",
    "TrackErrorPayload",
]
