"""Playlist ordering store.

Responsibilities:
- Create, rename, list, and delete named playlists.
- Keep each playlist's item positions exactly ``1..N`` across add, remove,
  and move, with every multi-row change committed as one transaction.

Key public types:
- `PlaylistStore`: playlist and playlist-item operations over a `Database`.
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from ..db.database import Database
from ..db.schema import PlaylistItemRow, PlaylistRow, SegmentRow
from ..errors import InvalidInputError, NotFoundError
from ..models.datatypes import Playlist, PlaylistItem
from ..parsing import normalize_optional_string


def _playlist_from_row(row: PlaylistRow) -> Playlist:
    return Playlist(
        id=row.id,
        name=row.name,
        description=row.description or "",
        created_at=row.created_at,
    )


def _item_from_row(row: PlaylistItemRow) -> PlaylistItem:
    return PlaylistItem(
        id=row.id,
        playlist_id=row.playlist_id,
        segment_id=row.segment_id,
        position=row.position,
    )


class PlaylistStore:
    """Persisted mapping of named playlists to ordered segment references."""

    _STAGE = "playlist"

    def __init__(self, database: Database) -> None:
        self._database = database

    # Playlists

    def create(self, name: str, description: str = "") -> Playlist:
        """Create a playlist with a unique, non-blank name."""

        normalized_name = self._require_name(name)
        with self._database.transaction() as session:
            self._reject_duplicate_name(session, normalized_name)
            row = PlaylistRow(name=normalized_name, description=description or "")
            session.add(row)
            session.flush()
            playlist = _playlist_from_row(row)
        logger.debug("playlist created id={} name={}", playlist.id, playlist.name)
        return playlist

    def get(self, playlist_id: int) -> Playlist | None:
        with self._database.transaction() as session:
            row = session.get(PlaylistRow, playlist_id)
            return _playlist_from_row(row) if row is not None else None

    def find_by_name(self, name: str) -> Playlist | None:
        with self._database.transaction() as session:
            row = session.scalars(select(PlaylistRow).where(PlaylistRow.name == name)).first()
            return _playlist_from_row(row) if row is not None else None

    def list_all(self) -> list[Playlist]:
        """Return all playlists ordered by name."""

        with self._database.transaction() as session:
            rows = session.scalars(select(PlaylistRow).order_by(PlaylistRow.name)).all()
            return [_playlist_from_row(row) for row in rows]

    def update(
        self,
        playlist_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Playlist:
        """Rename a playlist and/or replace its description."""

        with self._database.transaction() as session:
            row = self._require_playlist(session, playlist_id)
            if name is not None:
                normalized_name = self._require_name(name)
                if normalized_name != row.name:
                    self._reject_duplicate_name(session, normalized_name)
                row.name = normalized_name
            if description is not None:
                row.description = description
            session.flush()
            return _playlist_from_row(row)

    def delete_playlist(self, playlist_id: int) -> None:
        """Remove a playlist and all of its items atomically.

        Raises:
            NotFoundError: When the playlist does not exist (also on re-delete).
        """

        with self._database.transaction() as session:
            self._require_playlist(session, playlist_id)
            session.execute(
                delete(PlaylistItemRow).where(PlaylistItemRow.playlist_id == playlist_id)
            )
            session.execute(delete(PlaylistRow).where(PlaylistRow.id == playlist_id))
        logger.debug("playlist deleted id={}", playlist_id)

    # Items

    def add_item(self, playlist_id: int, segment_id: int) -> PlaylistItem:
        """Append a segment at ``max(position) + 1``.

        Adding a segment that is already in the playlist returns the existing
        item unchanged.
        """

        with self._database.transaction() as session:
            self._require_playlist(session, playlist_id)
            if session.get(SegmentRow, segment_id) is None:
                raise NotFoundError(stage=self._STAGE, entity="Segment", identifier=segment_id)

            existing = session.scalars(
                select(PlaylistItemRow).where(
                    PlaylistItemRow.playlist_id == playlist_id,
                    PlaylistItemRow.segment_id == segment_id,
                )
            ).first()
            if existing is not None:
                logger.debug(
                    "playlist item already present playlist_id={} segment_id={}",
                    playlist_id,
                    segment_id,
                )
                return _item_from_row(existing)

            row = PlaylistItemRow(
                playlist_id=playlist_id,
                segment_id=segment_id,
                position=self._max_position(session, playlist_id) + 1,
            )
            session.add(row)
            session.flush()
            item = _item_from_row(row)
        logger.debug(
            "playlist item added id={} playlist_id={} position={}",
            item.id,
            playlist_id,
            item.position,
        )
        return item

    def remove_item(self, item_id: int) -> None:
        """Delete an item and close the gap it leaves behind."""

        with self._database.transaction() as session:
            row = session.get(PlaylistItemRow, item_id)
            if row is None:
                raise NotFoundError(stage=self._STAGE, entity="Playlist item", identifier=item_id)
            self._delete_and_close_gap(session, row)

    def remove_segment(self, playlist_id: int, segment_id: int) -> None:
        """Delete the item referencing `segment_id` from a playlist."""

        with self._database.transaction() as session:
            self._require_playlist(session, playlist_id)
            row = session.scalars(
                select(PlaylistItemRow).where(
                    PlaylistItemRow.playlist_id == playlist_id,
                    PlaylistItemRow.segment_id == segment_id,
                )
            ).first()
            if row is None:
                raise NotFoundError(
                    stage=self._STAGE,
                    entity=f"Segment in playlist {playlist_id}",
                    identifier=segment_id,
                )
            self._delete_and_close_gap(session, row)

    def move_item(self, item_id: int, new_position: int) -> PlaylistItem:
        """Relocate one item, shifting the items between old and new rank.

        `new_position` is clamped into ``[1, N]``. Moving to the current
        position is a successful no-op.
        """

        with self._database.transaction() as session:
            row = session.get(PlaylistItemRow, item_id)
            if row is None:
                raise NotFoundError(stage=self._STAGE, entity="Playlist item", identifier=item_id)

            playlist_id = row.playlist_id
            current = row.position
            target = max(1, min(new_position, self._max_position(session, playlist_id)))
            if target == current:
                return _item_from_row(row)

            if target < current:
                session.execute(
                    update(PlaylistItemRow)
                    .where(
                        PlaylistItemRow.playlist_id == playlist_id,
                        PlaylistItemRow.position >= target,
                        PlaylistItemRow.position < current,
                    )
                    .values(position=PlaylistItemRow.position + 1)
                    .execution_options(synchronize_session=False)
                )
            else:
                session.execute(
                    update(PlaylistItemRow)
                    .where(
                        PlaylistItemRow.playlist_id == playlist_id,
                        PlaylistItemRow.position > current,
                        PlaylistItemRow.position <= target,
                    )
                    .values(position=PlaylistItemRow.position - 1)
                    .execution_options(synchronize_session=False)
                )
            session.execute(
                update(PlaylistItemRow)
                .where(PlaylistItemRow.id == item_id)
                .values(position=target)
                .execution_options(synchronize_session=False)
            )
            moved = PlaylistItem(
                id=row.id,
                playlist_id=playlist_id,
                segment_id=row.segment_id,
                position=target,
            )
        logger.debug("playlist item moved id={} from={} to={}", item_id, current, target)
        return moved

    def list_items(self, playlist_id: int) -> list[PlaylistItem]:
        """Return a playlist's items in position order."""

        with self._database.transaction() as session:
            self._require_playlist(session, playlist_id)
            rows = session.scalars(
                select(PlaylistItemRow)
                .where(PlaylistItemRow.playlist_id == playlist_id)
                .order_by(PlaylistItemRow.position)
            ).all()
            return [_item_from_row(row) for row in rows]

    def segment_ids(self, playlist_id: int) -> list[int]:
        """Return the playlist's segment ids in position order (not id order)."""

        return [item.segment_id for item in self.list_items(playlist_id)]

    # Helpers

    def _delete_and_close_gap(self, session: Session, row: PlaylistItemRow) -> None:
        playlist_id = row.playlist_id
        removed_position = row.position
        session.execute(delete(PlaylistItemRow).where(PlaylistItemRow.id == row.id))
        session.execute(
            update(PlaylistItemRow)
            .where(
                PlaylistItemRow.playlist_id == playlist_id,
                PlaylistItemRow.position > removed_position,
            )
            .values(position=PlaylistItemRow.position - 1)
            .execution_options(synchronize_session=False)
        )
        logger.debug(
            "playlist item removed id={} playlist_id={} position={}",
            row.id,
            playlist_id,
            removed_position,
        )

    def _max_position(self, session: Session, playlist_id: int) -> int:
        current_max = session.scalar(
            select(func.max(PlaylistItemRow.position)).where(
                PlaylistItemRow.playlist_id == playlist_id
            )
        )
        return int(current_max or 0)

    def _require_playlist(self, session: Session, playlist_id: int) -> PlaylistRow:
        row = session.get(PlaylistRow, playlist_id)
        if row is None:
            raise NotFoundError(
                stage=self._STAGE,
                entity="Playlist",
                identifier=playlist_id,
                hint="Run `markcast playlist list` to see existing playlists.",
            )
        return row

    def _require_name(self, name: str) -> str:
        normalized = normalize_optional_string(name)
        if normalized is None:
            raise InvalidInputError(stage=self._STAGE, detail="Playlist name must not be blank.")
        return normalized

    def _reject_duplicate_name(self, session: Session, name: str) -> None:
        clash = session.scalars(select(PlaylistRow.id).where(PlaylistRow.name == name)).first()
        if clash is not None:
            raise InvalidInputError(
                stage=self._STAGE,
                detail=f"Playlist name `{name}` is already used by playlist {clash}.",
                hint="Pick a different name or rename the existing playlist.",
            )
