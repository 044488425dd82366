"""Playlist storage primitives used by the import pipeline."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable
import weakref

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sonora.db import SessionCallable, run_session
from sonora.integrations.contracts import CatalogTrack
from sonora.logging import get_logger
from sonora.models import Playlist, PlaylistSong

logger = get_logger(__name__)

SessionRunner = Callable[[SessionCallable[Any]], Awaitable[Any]]


class InsertStatus(str, Enum):
    IMPORTED = "imported"
    DUPLICATE = "duplicate"
    STORAGE_ERROR = "storage_error"


@dataclass(slots=True, frozen=True)
class InsertResult:
    status: InsertStatus
    position: int | None = None
    error: str | None = None


@dataclass(slots=True, frozen=True)
class PlaylistRecord:
    id: str
    user_id: str
    name: str
    description: str | None
    created_at: datetime


@dataclass(slots=True, frozen=True)
class PlaylistSongRecord:
    song: CatalogTrack
    position: int


class PlaylistCreationError(RuntimeError):
    """Raised when a target playlist could not be created."""


def _to_record(row: Playlist) -> PlaylistRecord:
    return PlaylistRecord(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        description=row.description,
        created_at=row.created_at,
    )


def _membership_exists(session: Session, playlist_id: str, song_id: str) -> bool:
    stmt = select(PlaylistSong.id).where(
        PlaylistSong.playlist_id == playlist_id,
        PlaylistSong.song_id == song_id,
    )
    return session.execute(stmt.limit(1)).first() is not None


class PlaylistWriter:
    """Create playlists and append songs with dedup and dense positions.

    Appends to one playlist are serialised by an in-process lock. The unique
    ``(playlist_id, position)`` constraint catches writers in other processes;
    a collision re-reads the max position and tries again.
    """

    def __init__(
        self,
        *,
        session_runner: SessionRunner | None = None,
        max_attempts: int = 3,
    ) -> None:
        self._run_session: SessionRunner = session_runner or run_session
        self._max_attempts = max(1, int(max_attempts))
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, playlist_id: str) -> asyncio.Lock:
        lock = self._locks.get(playlist_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[playlist_id] = lock
        return lock

    async def create_playlist(
        self, user_id: str, name: str, description: str | None = None
    ) -> PlaylistRecord:
        def _create(session: Session) -> PlaylistRecord:
            row = Playlist(user_id=user_id, name=name, description=description)
            session.add(row)
            session.flush()
            return _to_record(row)

        try:
            return await self._run_session(_create)
        except SQLAlchemyError as exc:
            logger.error("Failed to create playlist %r: %s", name, exc)
            raise PlaylistCreationError(str(exc)) from exc

    async def get_playlist(self, playlist_id: str) -> PlaylistRecord | None:
        def _get(session: Session) -> PlaylistRecord | None:
            row = session.get(Playlist, playlist_id)
            return _to_record(row) if row is not None else None

        return await self._run_session(_get)

    async def list_songs(self, playlist_id: str) -> list[PlaylistSongRecord]:
        def _list(session: Session) -> list[PlaylistSongRecord]:
            stmt = (
                select(PlaylistSong.song_data, PlaylistSong.position)
                .where(PlaylistSong.playlist_id == playlist_id)
                .order_by(PlaylistSong.position.asc())
            )
            return [
                PlaylistSongRecord(song=CatalogTrack.from_payload(data or {}), position=position)
                for data, position in session.execute(stmt)
            ]

        return await self._run_session(_list)

    async def insert(self, playlist_id: str, song: CatalogTrack) -> InsertResult:
        """Append ``song`` unless it is already a member of the playlist."""

        if not song.id:
            return InsertResult(InsertStatus.STORAGE_ERROR, error="song has no id")
        song_id = str(song.id)
        payload = song.to_payload()

        def _append(session: Session) -> InsertResult:
            if _membership_exists(session, playlist_id, song_id):
                return InsertResult(InsertStatus.DUPLICATE)
            max_position = session.execute(
                select(func.max(PlaylistSong.position)).where(
                    PlaylistSong.playlist_id == playlist_id
                )
            ).scalar()
            position = 0 if max_position is None else int(max_position) + 1
            session.add(
                PlaylistSong(
                    playlist_id=playlist_id,
                    song_id=song_id,
                    song_data=payload,
                    position=position,
                )
            )
            session.flush()
            return InsertResult(InsertStatus.IMPORTED, position=position)

        def _exists(session: Session) -> bool:
            return _membership_exists(session, playlist_id, song_id)

        async with self._lock_for(playlist_id):
            last_error: Exception | None = None
            for attempt in range(1, self._max_attempts + 1):
                try:
                    return await self._run_session(_append)
                except IntegrityError as exc:
                    last_error = exc
                    try:
                        if await self._run_session(_exists):
                            return InsertResult(InsertStatus.DUPLICATE)
                    except SQLAlchemyError as check_exc:
                        return InsertResult(InsertStatus.STORAGE_ERROR, error=str(check_exc))
                    logger.warning(
                        "Position collision on playlist %s (attempt %s/%s)",
                        playlist_id,
                        attempt,
                        self._max_attempts,
                    )
                except SQLAlchemyError as exc:
                    return InsertResult(InsertStatus.STORAGE_ERROR, error=str(exc))
            return InsertResult(
                InsertStatus.STORAGE_ERROR,
                error=f"position conflict persisted after {self._max_attempts} attempts: {last_error}",
            )


__all__ = [
    "InsertResult",
    "InsertStatus",
    "PlaylistCreationError",
    "PlaylistRecord",
    "PlaylistSongRecord",
    "PlaylistWriter",
    "SessionRunner",
]
