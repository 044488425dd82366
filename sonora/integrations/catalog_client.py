"""HTTP client for the internal catalog search service."""

from __future__ import annotations

from typing import Any, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from sonora.config import CatalogConfig
from sonora.integrations.contracts import CatalogTrack
from sonora.logging import get_logger

logger = get_logger(__name__)


class CatalogSearchError(RuntimeError):
    """Raised when the catalog search request failed or returned garbage."""


class _SongPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    song: str | None = None
    title: str | None = None
    image: str | None = None
    album: str | None = None
    media_url: str | None = None
    url: str | None = None
    media_preview_url: str | None = None
    duration: str | None = None
    year: str | None = None
    primary_artists: str | None = None
    singers: str | None = None
    artist: str | None = None

    @field_validator("id", "duration", "year", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def to_track(self) -> CatalogTrack:
        return CatalogTrack(
            id=self.id or None,
            title=self.song or self.title or "",
            artist=self.primary_artists or self.singers or self.artist or "",
            album=self.album,
            url=self.media_url or self.url,
            preview_url=self.media_preview_url,
            duration=self.duration,
            year=self.year,
            image=self.image,
        )


class CatalogSearchClient:
    """Search the catalog with ``GET <search_url>?query=<text>``."""

    def __init__(
        self,
        config: CatalogConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    async def search(self, query: str) -> Sequence[CatalogTrack]:
        if not query:
            return []
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_ms / 1000.0,
                transport=self._transport,
            ) as client:
                response = await client.get(self._config.search_url, params={"query": query})
        except httpx.TimeoutException as exc:
            raise CatalogSearchError("catalog search timed out") from exc
        except httpx.HTTPError as exc:
            raise CatalogSearchError(f"catalog request failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise CatalogSearchError(f"catalog returned HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogSearchError("catalog returned invalid JSON") from exc
        if not isinstance(payload, list):
            raise CatalogSearchError("catalog returned an unexpected payload")

        tracks: list[CatalogTrack] = []
        for raw in payload:
            try:
                tracks.append(_SongPayload.model_validate(raw).to_track())
            except ValidationError:
                # Keep the slot so ranking is preserved; the resolver rejects id-less songs.
                tracks.append(CatalogTrack(id=None, title="", artist=""))
        return tracks


__all__ = ["CatalogSearchClient", "CatalogSearchError"]
