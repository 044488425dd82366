"""Contracts shared by the import pipeline and its external collaborators."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any, Protocol, Sequence

from starlette.requests import Request


@dataclass(slots=True, frozen=True)
class ForeignTrack:
    """Track reference on the source platform, not yet resolved to the catalog."""

    id: str | None
    title: str
    artist: str
    is_local: bool = False

    @property
    def display_name(self) -> str:
        if self.artist:
            return f"{self.title} by {self.artist}"
        return self.title


@dataclass(slots=True, frozen=True)
class CatalogTrack:
    """Playable song known to the internal catalog search service."""

    id: str | None
    title: str
    artist: str
    album: str | None = None
    url: str | None = None
    preview_url: str | None = None
    duration: str | None = None
    year: str | None = None
    image: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CatalogTrack":
        return cls(
            id=payload.get("id"),
            title=str(payload.get("title") or ""),
            artist=str(payload.get("artist") or ""),
            album=payload.get("album"),
            url=payload.get("url"),
            preview_url=payload.get("preview_url"),
            duration=payload.get("duration"),
            year=payload.get("year"),
            image=payload.get("image"),
        )


class CatalogSearch(Protocol):
    """Free-text search against the internal catalog, best match first."""

    async def search(self, query: str) -> Sequence[CatalogTrack]:
        ...


class AccessTokenProvider(Protocol):
    """Source-platform access token lookup for the current request."""

    async def get_access_token(self, request: Request) -> str | None:
        ...


class CallerIdentityProvider(Protocol):
    """Resolves the authenticated caller of the current request."""

    def current_caller(self, request: Request) -> str | None:
        ...


class HeaderIdentityProvider:
    """Trust the caller id forwarded by the upstream auth gateway."""

    def __init__(self, header_name: str = "X-User-Id") -> None:
        self._header_name = header_name

    def current_caller(self, request: Request) -> str | None:
        value = request.headers.get(self._header_name, "").strip()
        return value or None


__all__ = [
    "AccessTokenProvider",
    "CallerIdentityProvider",
    "CatalogSearch",
    "CatalogTrack",
    "ForeignTrack",
    "HeaderIdentityProvider",
]
