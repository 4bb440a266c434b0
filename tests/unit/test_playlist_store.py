"""Unit tests for playlist ordering: contiguous positions under add, remove, and move."""

from __future__ import annotations

from collections.abc import Callable
import itertools

import pytest
from sqlalchemy import Update, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from markcast.db.database import Database
from markcast.db.schema import PlaylistItemRow
from markcast.errors import InvalidInputError, NotFoundError
from markcast.models.datatypes import Segment
from markcast.store.playlists import PlaylistStore


def _playlist_with_segments(
    store: PlaylistStore,
    make_segment: Callable[..., Segment],
    count: int,
) -> tuple[int, list[Segment]]:
    """Create a playlist holding `count` fresh segments in creation order."""

    playlist = store.create("Weekly digest")
    segments = [make_segment() for _ in range(count)]
    for segment in segments:
        store.add_item(playlist.id, segment.id)
    return playlist.id, segments


def _assert_contiguous(store: PlaylistStore, playlist_id: int) -> None:
    positions = [item.position for item in store.list_items(playlist_id)]
    assert positions == list(range(1, len(positions) + 1))


def test_add_item_appends_at_next_position(database: Database, make_segment) -> None:
    store = PlaylistStore(database)
    playlist_id, segments = _playlist_with_segments(store, make_segment, 3)

    items = store.list_items(playlist_id)

    assert [item.position for item in items] == [1, 2, 3]
    assert [item.segment_id for item in items] == [segment.id for segment in segments]


def test_add_item_twice_returns_existing_item_without_duplicate(
    database: Database, make_segment
) -> None:
    """Re-adding a member should be a no-op that keeps the original rank."""

    store = PlaylistStore(database)
    playlist_id, segments = _playlist_with_segments(store, make_segment, 2)
    first = store.list_items(playlist_id)[0]

    again = store.add_item(playlist_id, segments[0].id)

    assert again == first
    assert len(store.list_items(playlist_id)) == 2


def test_add_item_rejects_missing_playlist_or_segment(database: Database, make_segment) -> None:
    store = PlaylistStore(database)
    playlist = store.create("Evening")
    segment = make_segment()

    with pytest.raises(NotFoundError, match="Playlist not found: ID 999"):
        store.add_item(999, segment.id)
    with pytest.raises(NotFoundError, match="Segment not found: ID 999"):
        store.add_item(playlist.id, 999)


def test_move_item_earlier_shifts_intervening_items_down(
    database: Database, make_segment
) -> None:
    """Moving position 3 to 1 in A..E should yield C, A, B, D, E."""

    store = PlaylistStore(database)
    playlist_id, segments = _playlist_with_segments(store, make_segment, 5)
    a, b, c, d, e = (segment.id for segment in segments)
    item_c = store.list_items(playlist_id)[2]

    moved = store.move_item(item_c.id, 1)

    assert moved.position == 1
    assert store.segment_ids(playlist_id) == [c, a, b, d, e]
    _assert_contiguous(store, playlist_id)


def test_move_item_later_shifts_intervening_items_up(database: Database, make_segment) -> None:
    store = PlaylistStore(database)
    playlist_id, segments = _playlist_with_segments(store, make_segment, 5)
    a, b, c, d, e = (segment.id for segment in segments)
    item_b = store.list_items(playlist_id)[1]

    store.move_item(item_b.id, 4)

    assert store.segment_ids(playlist_id) == [a, c, d, b, e]
    _assert_contiguous(store, playlist_id)


def test_move_item_clamps_out_of_range_positions(database: Database, make_segment) -> None:
    store = PlaylistStore(database)
    playlist_id, segments = _playlist_with_segments(store, make_segment, 3)
    a, b, c = (segment.id for segment in segments)
    items = store.list_items(playlist_id)

    assert store.move_item(items[0].id, 99).position == 3
    assert store.segment_ids(playlist_id) == [b, c, a]
    assert store.move_item(items[0].id, -5).position == 1
    assert store.segment_ids(playlist_id) == [a, b, c]


def test_move_item_to_current_position_is_a_no_op(database: Database, make_segment) -> None:
    store = PlaylistStore(database)
    playlist_id, _ = _playlist_with_segments(store, make_segment, 3)
    before = store.list_items(playlist_id)

    moved = store.move_item(before[1].id, 2)

    assert moved == before[1]
    assert store.list_items(playlist_id) == before


def test_move_missing_item_raises_not_found(database: Database) -> None:
    with pytest.raises(NotFoundError, match="Playlist item not found: ID 404"):
        PlaylistStore(database).move_item(404, 1)


def test_remove_item_closes_the_gap(database: Database, make_segment) -> None:
    """Removing position 2 of 4 should renumber the survivors to 1, 2, 3."""

    store = PlaylistStore(database)
    playlist_id, segments = _playlist_with_segments(store, make_segment, 4)
    a, b, c, d = (segment.id for segment in segments)
    item_b = store.list_items(playlist_id)[1]

    store.remove_item(item_b.id)

    assert store.segment_ids(playlist_id) == [a, c, d]
    _assert_contiguous(store, playlist_id)
    with pytest.raises(NotFoundError):
        store.remove_item(item_b.id)


def test_remove_segment_then_add_appends_at_end(database: Database, make_segment) -> None:
    store = PlaylistStore(database)
    playlist_id, segments = _playlist_with_segments(store, make_segment, 3)
    a, b, c = (segment.id for segment in segments)

    store.remove_segment(playlist_id, a)
    item = store.add_item(playlist_id, a)

    assert item.position == 3
    assert store.segment_ids(playlist_id) == [b, c, a]


def test_segment_ids_follow_position_not_id_order(database: Database, make_segment) -> None:
    store = PlaylistStore(database)
    playlist = store.create("Reversed")
    segments = [make_segment() for _ in range(3)]
    for segment in reversed(segments):
        store.add_item(playlist.id, segment.id)

    assert store.segment_ids(playlist.id) == [segment.id for segment in reversed(segments)]


def test_delete_playlist_removes_items_and_rejects_second_delete(
    database: Database, make_segment
) -> None:
    store = PlaylistStore(database)
    playlist_id, _ = _playlist_with_segments(store, make_segment, 3)

    store.delete_playlist(playlist_id)

    assert store.get(playlist_id) is None
    with database.transaction() as session:
        remaining = session.scalar(
            select(func.count())
            .select_from(PlaylistItemRow)
            .where(PlaylistItemRow.playlist_id == playlist_id)
        )
    assert remaining == 0
    with pytest.raises(NotFoundError):
        store.delete_playlist(playlist_id)


def test_create_rejects_blank_and_duplicate_names(database: Database) -> None:
    store = PlaylistStore(database)
    store.create("Morning")

    with pytest.raises(InvalidInputError, match="must not be blank"):
        store.create("   ")
    with pytest.raises(InvalidInputError, match="already used"):
        store.create(" Morning ")


def test_update_renames_and_lists_by_name(database: Database) -> None:
    store = PlaylistStore(database)
    zulu = store.create("Zulu")
    store.create("Alpha")

    renamed = store.update(zulu.id, name="Beta", description="weekday picks")

    assert renamed.name == "Beta"
    assert renamed.description == "weekday picks"
    assert [playlist.name for playlist in store.list_all()] == ["Alpha", "Beta"]
    assert store.find_by_name("Beta") == renamed
    with pytest.raises(InvalidInputError):
        store.update(zulu.id, name="Alpha")


def _fail_on_update(monkeypatch: pytest.MonkeyPatch, nth: int) -> None:
    """Make the `nth` bulk UPDATE issued through any session raise."""

    original_execute = Session.execute
    seen = itertools.count(1)

    def _execute(self: Session, statement, *args, **kwargs):
        if isinstance(statement, Update) and next(seen) == nth:
            raise OperationalError(str(statement), {}, Exception("disk I/O error"))
        return original_execute(self, statement, *args, **kwargs)

    monkeypatch.setattr(Session, "execute", _execute)


def test_remove_item_rolls_back_delete_when_gap_shift_fails(
    database: Database, make_segment, monkeypatch: pytest.MonkeyPatch
) -> None:
    store = PlaylistStore(database)
    playlist_id, _ = _playlist_with_segments(store, make_segment, 4)
    before = store.list_items(playlist_id)
    with monkeypatch.context() as patch:
        _fail_on_update(patch, 1)
        with pytest.raises(OperationalError):
            store.remove_item(before[1].id)

    assert store.list_items(playlist_id) == before


def test_move_item_rolls_back_shift_when_final_placement_fails(
    database: Database, make_segment, monkeypatch: pytest.MonkeyPatch
) -> None:
    store = PlaylistStore(database)
    playlist_id, _ = _playlist_with_segments(store, make_segment, 5)
    before = store.list_items(playlist_id)
    with monkeypatch.context() as patch:
        _fail_on_update(patch, 2)
        with pytest.raises(OperationalError):
            store.move_item(before[2].id, 1)

    assert store.list_items(playlist_id) == before
    _assert_contiguous(store, playlist_id)
