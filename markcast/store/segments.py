"""Segment store: catalog of individually synthesized narration clips.

Segments are produced by the synthesis step outside this package; the store
offers that producer a write path and gives the assembly components read
access. Nothing here deletes a segment.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from loguru import logger
from sqlalchemy import select

from ..db.database import Database
from ..db.schema import SegmentRow
from ..errors import InvalidInputError, NotFoundError
from ..models.datatypes import Segment


def segment_from_row(row: SegmentRow) -> Segment:
    """Convert an ORM row into an immutable segment record."""

    return Segment(
        id=row.id,
        article_id=row.article_id,
        file_path=Path(row.file_path),
        duration_seconds=row.duration,
        created_at=row.created_at,
    )


class SegmentStore:
    """Read/write access to persisted narration segments."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def create(
        self,
        *,
        article_id: int,
        file_path: Path,
        duration_seconds: float | None = None,
    ) -> Segment:
        """Register a synthesized clip and return the stored record."""

        if duration_seconds is not None and duration_seconds < 0:
            raise InvalidInputError(
                stage="segments",
                detail=f"Segment duration must be non-negative, got {duration_seconds}.",
            )
        with self._database.transaction() as session:
            row = SegmentRow(
                article_id=article_id,
                file_path=str(file_path),
                duration=duration_seconds,
            )
            session.add(row)
            session.flush()
            segment = segment_from_row(row)
        logger.debug("segment created id={} article_id={}", segment.id, article_id)
        return segment

    def get(self, segment_id: int) -> Segment | None:
        with self._database.transaction() as session:
            row = session.get(SegmentRow, segment_id)
            return segment_from_row(row) if row is not None else None

    def get_many(self, segment_ids: Sequence[int]) -> list[Segment]:
        """Resolve ids to segments in the given order.

        Raises:
            NotFoundError: Naming the first id with no stored segment.
        """

        with self._database.transaction() as session:
            rows = session.scalars(
                select(SegmentRow).where(SegmentRow.id.in_(set(segment_ids)))
            ).all()
            by_id = {row.id: segment_from_row(row) for row in rows}

        resolved: list[Segment] = []
        for segment_id in segment_ids:
            segment = by_id.get(segment_id)
            if segment is None:
                raise NotFoundError(
                    stage="resolve",
                    entity="Segment",
                    identifier=segment_id,
                    hint="Run `markcast unprocessed` to list known segment ids.",
                )
            resolved.append(segment)
        return resolved

    def list_all(self) -> list[Segment]:
        """Return all segments in ascending id order."""

        with self._database.transaction() as session:
            rows = session.scalars(select(SegmentRow).order_by(SegmentRow.id)).all()
            return [segment_from_row(row) for row in rows]

    def update_duration(self, segment_id: int, duration_seconds: float) -> Segment:
        """Correct the measured duration of one segment."""

        if duration_seconds < 0:
            raise InvalidInputError(
                stage="segments",
                detail=f"Segment duration must be non-negative, got {duration_seconds}.",
            )
        with self._database.transaction() as session:
            row = session.get(SegmentRow, segment_id)
            if row is None:
                raise NotFoundError(stage="segments", entity="Segment", identifier=segment_id)
            row.duration = duration_seconds
            session.flush()
            return segment_from_row(row)
