"""Paginated reads of Spotify playlists for the import pipeline."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
import requests
import spotipy
from spotipy.exceptions import SpotifyException

from sonora.config import SpotifyConfig
from sonora.integrations.contracts import ForeignTrack
from sonora.logging import get_logger
from sonora.logging_events import log_event
from sonora.utils.retry import RetryDirective, Sleeper, with_retry

logger = get_logger(__name__)

_RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})

SpotifyClientFactory = Callable[[str], Any]


class SpotifyFetchError(RuntimeError):
    """Raised when the source platform refused or failed a page request."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retry_after_ms: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after_ms = retry_after_ms


class SpotifyAuthError(SpotifyFetchError):
    """Raised when Spotify rejected the bearer token (HTTP 401)."""


class _ArtistPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None


class _TrackPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str | None = None
    artists: list[_ArtistPayload] = Field(default_factory=list)
    is_local: bool = False


class _PlaylistItemPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    track: _TrackPayload | None = None


class _ImagePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str | None = None


class _OwnerPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    display_name: str | None = None


class _TracksRefPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total: int = 0


class _PlaylistPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    description: str | None = None
    images: list[_ImagePayload] | None = None
    tracks: _TracksRefPayload | None = None
    owner: _OwnerPayload | None = None


@dataclass(slots=True, frozen=True)
class SourcePlaylist:
    """Summary of a playlist the caller can import from."""

    id: str
    name: str
    description: str | None
    image: str | None
    track_count: int
    owner: str


def build_spotify_client(access_token: str, *, timeout_seconds: float = 10.0) -> spotipy.Spotify:
    """Create a bearer-token client without spotipy's built-in retry adapter."""

    # A bare session keeps the real HTTP status on errors; retries happen in with_retry.
    return spotipy.Spotify(
        auth=access_token,
        requests_session=requests.Session(),
        requests_timeout=timeout_seconds,
    )


def parse_playlist_item(item: Any) -> ForeignTrack | None:
    """Validate one ``items[]`` entry; return ``None`` for entries that cannot be imported."""

    try:
        payload = _PlaylistItemPayload.model_validate(item)
    except ValidationError:
        logger.debug("Quarantined malformed playlist item", extra={"event": "spotify.item_invalid"})
        return None
    track = payload.track
    if track is None or track.is_local:
        return None
    title = (track.name or "").strip()
    artist = ""
    if track.artists:
        artist = (track.artists[0].name or "").strip()
    return ForeignTrack(id=track.id, title=title, artist=artist, is_local=False)


def _parse_retry_after_ms(headers: Mapping[str, Any] | None) -> int | None:
    if not headers:
        return None
    for name, value in headers.items():
        if str(name).lower() != "retry-after":
            continue
        try:
            return max(0, int(value) * 1000)
        except (TypeError, ValueError):
            return None
    return None


def _translate_error(exc: Exception) -> Exception:
    if isinstance(exc, SpotifyException):
        status = getattr(exc, "http_status", None)
        message = getattr(exc, "msg", None) or str(exc)
        error_cls = SpotifyAuthError if status == 401 else SpotifyFetchError
        return error_cls(
            f"Failed to fetch playlist tracks: {status} - {message}",
            status_code=status,
            retry_after_ms=_parse_retry_after_ms(getattr(exc, "headers", None)),
        )
    if isinstance(exc, requests.RequestException):
        return SpotifyFetchError(f"Failed to fetch playlist tracks: {exc}")
    return exc


def _classify(exc: Exception) -> RetryDirective:
    if not isinstance(exc, SpotifyFetchError):
        return RetryDirective(retry=False)
    if exc.status_code is None:
        return RetryDirective(retry=True)
    if exc.status_code in _RETRYABLE_STATUSES:
        return RetryDirective(retry=True, delay_override_ms=exc.retry_after_ms)
    return RetryDirective(retry=False)


class SpotifyTrackFetcher:
    """Walk a playlist's pages following the server supplied ``next`` cursor."""

    def __init__(
        self,
        config: SpotifyConfig,
        *,
        client_factory: SpotifyClientFactory | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or (
            lambda token: build_spotify_client(token, timeout_seconds=config.timeout_seconds)
        )
        self._sleep = sleep

    async def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        async def _attempt() -> Any:
            try:
                return await asyncio.to_thread(func, *args, **kwargs)
            except Exception as exc:
                translated = _translate_error(exc)
                if translated is exc:
                    raise
                raise translated from exc

        return await with_retry(
            _attempt,
            attempts=self._config.max_attempts,
            base_ms=self._config.backoff_base_ms,
            classify_err=_classify,
            sleep=self._sleep,
        )

    async def iter_pages(
        self, playlist_id: str, access_token: str
    ) -> AsyncIterator[list[ForeignTrack]]:
        """Yield importable tracks page by page.

        Each call starts from the first page again. A page without an ``items``
        list ends the walk quietly; HTTP failures raise :class:`SpotifyFetchError`.
        """

        client = self._client_factory(access_token)
        page: Any = await self._call(
            client.playlist_items,
            playlist_id,
            limit=self._config.page_size,
            additional_types=("track",),
        )
        page_number = 1
        while page is not None:
            items = page.get("items") if isinstance(page, Mapping) else None
            if not isinstance(items, list):
                logger.warning(
                    "Spotify returned a page without items; stopping pagination",
                    extra={
                        "event": "spotify.page_invalid",
                        "playlist_id": playlist_id,
                        "page": page_number,
                    },
                )
                return
            tracks = [track for track in map(parse_playlist_item, items) if track is not None]
            log_event(
                logger,
                "spotify.page_fetched",
                level=logging.DEBUG,
                playlist_id=playlist_id,
                page=page_number,
                received=len(items),
                importable=len(tracks),
            )
            yield tracks
            if not page.get("next"):
                return
            page = await self._call(client.next, page)
            page_number += 1

    async def iter_tracks(self, playlist_id: str, access_token: str) -> AsyncIterator[ForeignTrack]:
        async for page in self.iter_pages(playlist_id, access_token):
            for track in page:
                yield track

    async def fetch(self, playlist_id: str, access_token: str) -> list[ForeignTrack]:
        """Materialise every importable track so the total is known up front."""

        return [track async for track in self.iter_tracks(playlist_id, access_token)]

    async def list_user_playlists(self, access_token: str) -> list[SourcePlaylist]:
        """Return every playlist visible to the token owner."""

        client = self._client_factory(access_token)
        playlists: list[SourcePlaylist] = []
        page: Any = await self._call(client.current_user_playlists, limit=self._config.page_size)
        while isinstance(page, Mapping):
            for raw in page.get("items") or []:
                try:
                    payload = _PlaylistPayload.model_validate(raw)
                except ValidationError:
                    continue
                image = payload.images[0].url if payload.images else None
                playlists.append(
                    SourcePlaylist(
                        id=payload.id,
                        name=payload.name,
                        description=payload.description or None,
                        image=image,
                        track_count=payload.tracks.total if payload.tracks else 0,
                        owner=(payload.owner.display_name if payload.owner else None) or "Unknown",
                    )
                )
            if not page.get("next"):
                break
            page = await self._call(client.next, page)
        return playlists


__all__ = [
    "SourcePlaylist",
    "SpotifyAuthError",
    "SpotifyFetchError",
    "SpotifyTrackFetcher",
    "build_spotify_client",
    "parse_playlist_item",
]
