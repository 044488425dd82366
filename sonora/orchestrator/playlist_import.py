"""Drive a source playlist through fetch, match and insert, one track at a time."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date
import logging
import time

from sonora.config import ImportConfig
from sonora.integrations.contracts import ForeignTrack
from sonora.integrations.spotify_tracks import SpotifyTrackFetcher
from sonora.logging import get_logger
from sonora.logging_events import elapsed_ms, log_event
from sonora.progress import ImportProgressStore, ProgressSnapshot
from sonora.services.match_resolver import MatchResolver
from sonora.services.playlist_writer import InsertStatus, PlaylistWriter
from sonora.utils.metrics import counter, histogram

from .models import (
    ImportOutcome,
    ImportRequest,
    ImportResult,
    ImportState,
    TrackError,
    generate_session_id,
)

logger = get_logger(__name__)

REASON_DUPLICATE = "already in playlist"


def _record_item(outcome: str) -> None:
    counter(
        "sonora_import_items_total",
        "Imported playlist items by outcome",
        label_names=("outcome",),
    ).labels(outcome=outcome).inc()


def _record_run(state: ImportState, started: float) -> None:
    counter(
        "sonora_import_runs_total",
        "Playlist import runs by terminal state",
        label_names=("state",),
    ).labels(state=state.value).inc()
    histogram(
        "sonora_import_duration_seconds",
        "Wall time of playlist import runs",
    ).observe(time.perf_counter() - started)


class ImportValidationError(ValueError):
    """Raised before any I/O when the import request is incomplete."""


class TargetPlaylistNotFoundError(LookupError):
    """Raised when the requested target playlist is missing or owned by someone else."""

    def __init__(self, playlist_id: str | None) -> None:
        super().__init__(f"target playlist {playlist_id!r} not found")
        self.playlist_id = playlist_id


class _RunTally:
    """Mutable counters for one run; the error list is capped, the counters are not."""

    __slots__ = ("result", "_cap")

    def __init__(self, total: int, error_cap: int) -> None:
        self.result = ImportResult(total=total)
        self._cap = max(0, error_cap)

    def imported(self) -> None:
        self.result.imported += 1
        _record_item("imported")

    def failed(self, track: str, reason: str) -> None:
        self.result.failed += 1
        _record_item("failed")
        self._record(track, reason)

    def skipped(self, track: str, reason: str) -> None:
        self.result.skipped += 1
        _record_item("skipped")
        self._record(track, reason)

    def _record(self, track: str, reason: str) -> None:
        self.result.total_errors += 1
        if len(self.result.errors) < self._cap:
            self.result.errors.append(TrackError(track=track, reason=reason))

    def snapshot(self, *, current: int, current_track: str) -> ProgressSnapshot:
        result = self.result
        return ProgressSnapshot(
            current=current,
            total=result.total,
            imported=result.imported,
            failed=result.failed,
            skipped=result.skipped,
            current_track=current_track,
            errors=tuple(error.describe() for error in result.errors),
        )


class PlaylistImportOrchestrator:
    """Import one source playlist into an internal playlist.

    Only bad input, a failed fetch and a failed target lookup/creation abort a
    run. Everything that goes wrong for a single track is counted and
    recorded, and the loop moves on.
    """

    def __init__(
        self,
        *,
        fetcher: SpotifyTrackFetcher,
        resolver: MatchResolver,
        writer: PlaylistWriter,
        progress: ImportProgressStore,
        config: ImportConfig,
        today_fn: Callable[[], date] = date.today,
    ) -> None:
        self._fetcher = fetcher
        self._resolver = resolver
        self._writer = writer
        self._progress = progress
        self._config = config
        self._today = today_fn
        self._active_sessions: set[str] = set()

    @staticmethod
    def validate(request: ImportRequest) -> None:
        if not (request.source_playlist_id or "").strip():
            raise ImportValidationError("Playlist ID is required")
        if not request.create_new_playlist and not (request.target_playlist_id or "").strip():
            raise ImportValidationError("Target playlist ID is required")

    async def run(self, request: ImportRequest) -> ImportOutcome:
        self.validate(request)
        session_id = request.session_id or generate_session_id()
        if session_id in self._active_sessions:
            raise ImportValidationError(f"Import session {session_id} is already running")
        state = ImportState.FETCHING
        started = time.perf_counter()
        log_event(
            logger,
            "import.started",
            session_id=session_id,
            user_id=request.user_id,
            source_playlist_id=request.source_playlist_id,
            create_new_playlist=request.create_new_playlist,
        )
        self._active_sessions.add(session_id)
        try:
            tracks = await self._fetcher.fetch(request.source_playlist_id, request.access_token)
            state = ImportState.RESOLVING_TARGET
            playlist_id = await self._resolve_target(request)
            state = ImportState.PROCESSING
            result = await self._process(session_id, playlist_id, tracks)
        except Exception as exc:
            log_event(
                logger,
                "import.aborted",
                level=logging.WARNING,
                session_id=session_id,
                state=state.value,
                error=str(exc) or type(exc).__name__,
                duration_ms=elapsed_ms(started),
            )
            _record_run(ImportState.ABORTED, started)
            raise
        finally:
            self._progress.clear(session_id)
            self._active_sessions.discard(session_id)

        log_event(
            logger,
            "import.completed",
            session_id=session_id,
            playlist_id=playlist_id,
            state=ImportState.COMPLETED.value,
            total=result.total,
            imported=result.imported,
            failed=result.failed,
            skipped=result.skipped,
            duration_ms=elapsed_ms(started),
        )
        _record_run(ImportState.COMPLETED, started)
        return ImportOutcome(playlist_id=playlist_id, session_id=session_id, result=result)

    async def _resolve_target(self, request: ImportRequest) -> str:
        if request.create_new_playlist:
            name = (request.playlist_name or "").strip() or self._config.default_playlist_name
            description = f"Imported from Spotify on {self._today().isoformat()}"
            record = await self._writer.create_playlist(request.user_id, name, description)
            return record.id

        playlist = await self._writer.get_playlist(str(request.target_playlist_id))
        if playlist is None or playlist.user_id != request.user_id:
            raise TargetPlaylistNotFoundError(request.target_playlist_id)
        return playlist.id

    async def _process(
        self, session_id: str, playlist_id: str, tracks: Sequence[ForeignTrack]
    ) -> ImportResult:
        tally = _RunTally(total=len(tracks), error_cap=self._config.error_cap)
        self._progress.set(session_id, tally.snapshot(current=0, current_track=""))

        for index, track in enumerate(tracks):
            name = track.display_name
            self._progress.set(session_id, tally.snapshot(current=index + 1, current_track=name))
            try:
                await self._process_item(tally, playlist_id, track, name)
            except Exception as exc:
                logger.exception("Unexpected error importing %r", name)
                tally.failed(name, str(exc) or type(exc).__name__)

        self._progress.set(session_id, tally.snapshot(current=len(tracks), current_track=""))
        return tally.result

    async def _process_item(
        self, tally: _RunTally, playlist_id: str, track: ForeignTrack, name: str
    ) -> None:
        outcome = await self._resolver.resolve(track)
        if outcome.track is None:
            reason = outcome.reason or "unresolved"
            tally.failed(name, reason)
            log_event(logger, "import.item_failed", level=logging.DEBUG, track=name, reason=reason)
            return

        inserted = await self._writer.insert(playlist_id, outcome.track)
        if inserted.status is InsertStatus.IMPORTED:
            tally.imported()
        elif inserted.status is InsertStatus.DUPLICATE:
            tally.skipped(name, REASON_DUPLICATE)
        else:
            reason = f"database error: {inserted.error or 'unknown'}"
            tally.failed(name, reason)
            log_event(logger, "import.item_failed", level=logging.WARNING, track=name, reason=reason)


__all__ = [
    "ImportValidationError",
    "PlaylistImportOrchestrator",
    "REASON_DUPLICATE",
    "TargetPlaylistNotFoundError",
]
