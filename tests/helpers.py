"""Shared fakes for the import pipeline tests."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sonora.config import AppConfig, load_config
from sonora.integrations.contracts import CatalogTrack, ForeignTrack


def make_config(**env: Any) -> AppConfig:
    base = {"DATABASE_URL": "sqlite:///./data/sonora.db"}
    base.update({key: str(value) for key, value in env.items()})
    return load_config(base)


def spotify_item(
    title: str | None,
    artist: str | None = "Artist",
    *,
    track_id: str | None = None,
    is_local: bool = False,
) -> dict[str, Any]:
    artists = [{"name": artist}] if artist is not None else []
    return {
        "added_at": "2024-01-01T00:00:00Z",
        "track": {
            "id": track_id or (title or "").lower().replace(" ", "-") or None,
            "name": title,
            "artists": artists,
            "is_local": is_local,
        },
    }


def spotify_page(items: Sequence[Any], next_url: str | None = None) -> dict[str, Any]:
    return {"items": list(items), "next": next_url, "total": len(items)}


class FakeSpotifyClient:
    """In-memory stand-in for ``spotipy.Spotify`` that serves scripted pages.

    Each scripted entry is either a page payload or an exception to raise.
    """

    def __init__(
        self,
        pages: Sequence[Any] = (),
        *,
        playlists: Sequence[Any] = (),
    ) -> None:
        self._pages = list(pages)
        self._playlists = list(playlists)
        self._cursor: list[Any] = []
        self.calls: list[tuple[str, Any]] = []

    def _serve(self) -> Any:
        entry = self._cursor.pop(0)
        if isinstance(entry, BaseException):
            raise entry
        return entry

    def playlist_items(self, playlist_id: str, **kwargs: Any) -> Any:
        self.calls.append(("playlist_items", {"playlist_id": playlist_id, **kwargs}))
        self._cursor = list(self._pages)
        return self._serve()

    def current_user_playlists(self, **kwargs: Any) -> Any:
        self.calls.append(("current_user_playlists", kwargs))
        self._cursor = list(self._playlists)
        return self._serve()

    def next(self, page: Mapping[str, Any]) -> Any:
        self.calls.append(("next", page.get("next")))
        return self._serve()


class FakeCatalog:
    """Catalog search keyed by exact query text."""

    def __init__(self, results: Mapping[str, Any] | None = None) -> None:
        self._results = dict(results or {})
        self.queries: list[str] = []

    async def search(self, query: str) -> Sequence[CatalogTrack]:
        self.queries.append(query)
        result = self._results.get(query, [])
        if isinstance(result, BaseException):
            raise result
        return list(result)


class StaticFetcher:
    """Track fetcher returning a fixed list (or raising a fixed error)."""

    def __init__(self, tracks: Sequence[ForeignTrack] = (), *, error: Exception | None = None):
        self._tracks = list(tracks)
        self._error = error
        self.calls: list[tuple[str, str]] = []

    async def fetch(self, playlist_id: str, access_token: str) -> list[ForeignTrack]:
        self.calls.append((playlist_id, access_token))
        if self._error is not None:
            raise self._error
        return list(self._tracks)

    async def list_user_playlists(self, access_token: str) -> list[Any]:
        if self._error is not None:
            raise self._error
        return []


class StaticTokens:
    def __init__(self, token: str | None = "spotify-token") -> None:
        self._token = token

    async def get_access_token(self, request: Any) -> str | None:
        return self._token


def catalog_track(song_id: str | None, title: str = "Song", artist: str = "Artist") -> CatalogTrack:
    return CatalogTrack(
        id=song_id,
        title=title,
        artist=artist,
        album="Album",
        url=f"https://media.example/{song_id}.mp3" if song_id else None,
    )


def foreign(title: str, artist: str = "Artist") -> ForeignTrack:
    return ForeignTrack(id=title.lower(), title=title, artist=artist)
