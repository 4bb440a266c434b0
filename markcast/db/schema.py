"""SQLAlchemy table definitions for segments, playlists, and the assembly ledger.

The source-segment list of a ledger row is a JSON array in one column rather
than a join table; merges are rare, append-mostly events.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Return a naive UTC timestamp suitable for SQLite `DateTime` columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class JSONEncodedIdList(TypeDecorator):
    """Store a list of integer ids as JSON text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> str | None:
        if value is None:
            return None
        return json.dumps([int(item) for item in value])

    def process_result_value(self, value: str | None, dialect) -> list[int]:
        if value is None:
            return []
        decoded = json.loads(value)
        if not isinstance(decoded, list):
            raise ValueError(f"Expected a JSON array of ids, got: {value!r}")
        return [int(item) for item in decoded]


class SegmentRow(Base):
    __tablename__ = "segments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    article_id: Mapped[int] = mapped_column(Integer, index=True)
    file_path: Mapped[str] = mapped_column(String(1024))
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class PlaylistRow(Base):
    __tablename__ = "playlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True)
    description: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class PlaylistItemRow(Base):
    __tablename__ = "playlist_items"
    # No unique constraint on position: range shifts update many rows in one
    # statement and SQLite checks uniqueness row by row.
    __table_args__ = (
        UniqueConstraint("playlist_id", "segment_id", name="uq_playlist_segment"),
        CheckConstraint("position > 0", name="ck_position_positive"),
        Index("ix_playlist_items_playlist_position", "playlist_id", "position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    playlist_id: Mapped[int] = mapped_column(ForeignKey("playlists.id"))
    segment_id: Mapped[int] = mapped_column(ForeignKey("segments.id"))
    position: Mapped[int] = mapped_column(Integer)


class MergedAudioFileRow(Base):
    __tablename__ = "merged_audio_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    file_path: Mapped[str] = mapped_column(String(1024))
    source_files: Mapped[list[int]] = mapped_column(JSONEncodedIdList, default=list)
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    silence_seconds: Mapped[float] = mapped_column(Float, default=0.0)
    with_intro_outro: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class AssemblyLockRow(Base):
    __tablename__ = "assembly_locks"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    holder: Mapped[str] = mapped_column(String(255))
    acquired_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
