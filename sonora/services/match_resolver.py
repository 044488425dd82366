"""Resolve foreign tracks to catalog songs via free-text search."""

from __future__ import annotations

from dataclasses import dataclass

from sonora.integrations.contracts import CatalogSearch, CatalogTrack, ForeignTrack
from sonora.logging import get_logger

logger = get_logger(__name__)

REASON_INVALID_QUERY = "invalid search query"
REASON_NOT_FOUND = "not found in catalog"
REASON_INVALID_SONG = "invalid song data returned"


@dataclass(slots=True, frozen=True)
class MatchOutcome:
    """Either a matched catalog song or the reason no match was made."""

    track: CatalogTrack | None = None
    reason: str | None = None

    @property
    def matched(self) -> bool:
        return self.track is not None


def build_search_query(track: ForeignTrack) -> str:
    return f"{track.artist} {track.title}".strip()


class MatchResolver:
    """Pick the highest ranked catalog result for a foreign track.

    No scoring happens here; accuracy is whatever the search ranking gives.
    """

    def __init__(self, catalog: CatalogSearch) -> None:
        self._catalog = catalog

    async def resolve(self, track: ForeignTrack) -> MatchOutcome:
        query = build_search_query(track)
        if not query:
            return MatchOutcome(reason=REASON_INVALID_QUERY)

        try:
            results = await self._catalog.search(query)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.warning("Catalog search failed for %r: %s", query, message)
            return MatchOutcome(reason=f"search failed: {message}")

        if not results:
            return MatchOutcome(reason=REASON_NOT_FOUND)
        candidate = results[0]
        if candidate is None or not candidate.id:
            return MatchOutcome(reason=REASON_INVALID_SONG)
        return MatchOutcome(track=candidate)


__all__ = [
    "MatchOutcome",
    "MatchResolver",
    "REASON_INVALID_QUERY",
    "REASON_INVALID_SONG",
    "REASON_NOT_FOUND",
    "build_search_query",
]
