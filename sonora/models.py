"""Database models for Sonora playlists."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from sonora.db import Base


def _utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp for ORM defaults."""

    return datetime.now(UTC)


def _new_id() -> str:
    return uuid4().hex


class Playlist(Base):
    __tablename__ = "playlists"

    id = Column(String(64), primary_key=True, default=_new_id)
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String(512), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class PlaylistSong(Base):
    """Membership of a catalog song in a playlist.

    ``position`` is zero based and dense per playlist; both uniqueness
    constraints are what keeps concurrent writers from corrupting the order.
    """

    __tablename__ = "playlist_songs"
    __table_args__ = (
        UniqueConstraint("playlist_id", "song_id", name="uq_playlist_songs_song"),
        UniqueConstraint("playlist_id", "position", name="uq_playlist_songs_position"),
        Index("ix_playlist_songs_playlist_position", "playlist_id", "position"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    playlist_id = Column(
        String(64),
        ForeignKey("playlists.id", ondelete="CASCADE"),
        nullable=False,
    )
    song_id = Column(String(128), nullable=False)
    song_data = Column(JSON, nullable=False)
    position = Column(Integer, nullable=False)
    added_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
