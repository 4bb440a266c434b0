"""Unit tests for segment lookup and the single-writer assembly lock."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from markcast.db.database import Database
from markcast.db.schema import AssemblyLockRow, utcnow
from markcast.errors import InvalidInputError, LockBusyError, NotFoundError
from markcast.store.locks import AssemblyLock, default_holder
from markcast.store.segments import SegmentStore


def test_get_many_preserves_caller_order(database: Database, make_segment) -> None:
    segments = [make_segment() for _ in range(3)]
    wanted = [segments[2].id, segments[0].id, segments[1].id]

    resolved = SegmentStore(database).get_many(wanted)

    assert [segment.id for segment in resolved] == wanted


def test_get_many_names_first_missing_id(database: Database, make_segment) -> None:
    segment = make_segment()

    with pytest.raises(NotFoundError) as exc_info:
        SegmentStore(database).get_many([segment.id, 77, 78])

    assert exc_info.value.identifier == 77
    assert exc_info.value.stage == "resolve"


def test_create_and_update_duration(database: Database, tmp_path: Path) -> None:
    store = SegmentStore(database)
    segment = store.create(article_id=12, file_path=tmp_path / "a.mp3")

    assert segment.duration_seconds is None
    assert store.update_duration(segment.id, 42.0).duration_seconds == 42.0
    assert store.get(segment.id).file_path == tmp_path / "a.mp3"
    assert [item.id for item in store.list_all()] == [segment.id]
    with pytest.raises(InvalidInputError):
        store.update_duration(segment.id, -1.0)
    with pytest.raises(NotFoundError):
        store.update_duration(999, 1.0)


def test_lock_rejects_second_holder_until_released(database: Database) -> None:
    first = AssemblyLock(database, holder="host-a:1")
    second = AssemblyLock(database, holder="host-b:2")

    first.acquire()
    with pytest.raises(LockBusyError, match="held by `host-a:1`"):
        second.acquire()

    first.release()
    second.acquire()
    second.release()


def test_lock_is_reentrant_for_same_holder(database: Database) -> None:
    lock = AssemblyLock(database, holder="host-a:1")

    with lock.held():
        lock.acquire()

    AssemblyLock(database, holder="host-b:2").acquire()


def test_stale_lock_is_taken_over(database: Database) -> None:
    with database.transaction() as session:
        session.add(
            AssemblyLockRow(
                name="assembly",
                holder="crashed:99",
                acquired_at=utcnow() - timedelta(hours=2),
            )
        )

    lock = AssemblyLock(database, stale_after_seconds=3600, holder="host-a:1")
    lock.acquire()

    with database.transaction() as session:
        assert session.get(AssemblyLockRow, "assembly").holder == "host-a:1"


def test_default_holder_includes_process_id() -> None:
    host, _, pid = default_holder().rpartition(":")

    assert host
    assert pid.isdigit()
