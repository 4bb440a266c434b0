"""Assembly ledger and unprocessed-segment resolver.

Responsibilities:
- Persist one row per produced merged-audio file with the exact ordered
  segment ids it consumed.
- Derive "unprocessed" segments purely from ledger contents, so deleting or
  editing a ledger row is self-correcting.
- Report output files on disk that no ledger row references.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.database import Database
from ..db.schema import MergedAudioFileRow, SegmentRow
from ..errors import InvalidInputError, NotFoundError
from ..models.datatypes import MergedAudioFile, Segment
from .segments import segment_from_row


def _merged_from_row(row: MergedAudioFileRow) -> MergedAudioFile:
    return MergedAudioFile(
        id=row.id,
        name=row.name,
        file_path=Path(row.file_path),
        source_segment_ids=tuple(row.source_files or ()),
        duration_seconds=row.duration,
        silence_seconds=row.silence_seconds or 0.0,
        with_intro_outro=bool(row.with_intro_outro),
        created_at=row.created_at,
    )


class AssemblyLedger:
    """Catalog of produced merged-audio outputs."""

    _STAGE = "ledger"

    def __init__(self, database: Database) -> None:
        self._database = database

    def record(
        self,
        *,
        name: str,
        file_path: Path,
        source_segment_ids: Sequence[int],
        duration_seconds: float | None,
        silence_seconds: float,
        with_intro_outro: bool = False,
    ) -> MergedAudioFile:
        """Insert one ledger row; `source_segment_ids` is stored verbatim."""

        if not source_segment_ids:
            raise InvalidInputError(
                stage=self._STAGE,
                detail="A ledger entry must reference at least one segment.",
            )
        with self._database.transaction() as session:
            row = MergedAudioFileRow(
                name=name,
                file_path=str(file_path),
                source_files=list(source_segment_ids),
                duration=duration_seconds,
                silence_seconds=silence_seconds,
                with_intro_outro=with_intro_outro,
            )
            session.add(row)
            session.flush()
            merged = _merged_from_row(row)
        logger.debug(
            "ledger entry recorded id={} segments={} path={}",
            merged.id,
            len(merged.source_segment_ids),
            merged.file_path,
        )
        return merged

    def get(self, merged_id: int) -> MergedAudioFile | None:
        with self._database.transaction() as session:
            row = session.get(MergedAudioFileRow, merged_id)
            return _merged_from_row(row) if row is not None else None

    def list_all(self) -> list[MergedAudioFile]:
        """Return all ledger entries, newest first."""

        with self._database.transaction() as session:
            rows = session.scalars(
                select(MergedAudioFileRow).order_by(
                    MergedAudioFileRow.created_at.desc(),
                    MergedAudioFileRow.id.desc(),
                )
            ).all()
            return [_merged_from_row(row) for row in rows]

    def find_by_name(self, fragment: str) -> list[MergedAudioFile]:
        """Return entries whose name contains `fragment`."""

        with self._database.transaction() as session:
            rows = session.scalars(
                select(MergedAudioFileRow)
                .where(MergedAudioFileRow.name.contains(fragment, autoescape=True))
                .order_by(MergedAudioFileRow.id)
            ).all()
            return [_merged_from_row(row) for row in rows]

    def update(
        self,
        merged_id: int,
        *,
        name: str | None = None,
        duration_seconds: float | None = None,
    ) -> MergedAudioFile:
        """Apply a corrective edit to the name and/or duration of an entry."""

        with self._database.transaction() as session:
            row = session.get(MergedAudioFileRow, merged_id)
            if row is None:
                raise NotFoundError(
                    stage=self._STAGE, entity="Merged audio file", identifier=merged_id
                )
            if name is not None:
                row.name = name
            if duration_seconds is not None:
                if duration_seconds < 0:
                    raise InvalidInputError(
                        stage=self._STAGE,
                        detail=f"Duration must be non-negative, got {duration_seconds}.",
                    )
                row.duration = duration_seconds
            session.flush()
            return _merged_from_row(row)

    def delete(self, merged_id: int) -> None:
        """Remove an entry; its segments become unprocessed again."""

        with self._database.transaction() as session:
            row = session.get(MergedAudioFileRow, merged_id)
            if row is None:
                raise NotFoundError(
                    stage=self._STAGE, entity="Merged audio file", identifier=merged_id
                )
            session.delete(row)
        logger.debug("ledger entry deleted id={}", merged_id)

    def consumed_segment_ids(self) -> set[int]:
        """Return the union of source ids across every ledger entry."""

        with self._database.transaction() as session:
            return _consumed_ids(session)

    def find_orphans(
        self,
        output_dir: Path,
        *,
        keep: Sequence[Path] = (),
    ) -> list[Path]:
        """List files in `output_dir` that nothing stored references.

        Files named by a ledger entry or a segment row, plus any path in
        `keep` (intro/outro clips), are never reported. Hidden files
        (in-flight temporary outputs) are ignored.
        """

        if not output_dir.is_dir():
            return []
        with self._database.transaction() as session:
            stored = list(session.scalars(select(MergedAudioFileRow.file_path)))
            stored.extend(session.scalars(select(SegmentRow.file_path)))
        referenced = {Path(path).resolve() for path in stored}
        referenced.update(path.resolve() for path in keep)
        return [
            candidate
            for candidate in sorted(output_dir.iterdir())
            if candidate.is_file()
            and not candidate.name.startswith(".")
            and candidate.resolve() not in referenced
        ]


class UnprocessedSegmentResolver:
    """Compute segments that no ledger entry has consumed yet."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def find_unprocessed(self) -> list[Segment]:
        """Return segments absent from every ledger entry, ascending by id.

        An empty list means everything is already assembled (or nothing exists).
        """

        with self._database.transaction() as session:
            consumed = _consumed_ids(session)
            rows = session.scalars(select(SegmentRow).order_by(SegmentRow.id)).all()
            return [segment_from_row(row) for row in rows if row.id not in consumed]


def _consumed_ids(session: Session) -> set[int]:
    consumed: set[int] = set()
    for id_list in session.scalars(select(MergedAudioFileRow.source_files)).all():
        consumed.update(id_list or ())
    return consumed
