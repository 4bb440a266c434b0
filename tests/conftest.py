"""Shared pytest fixtures for the full markcast test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator
import itertools
from pathlib import Path
import subprocess
import sys

import pytest
from loguru import logger

from markcast.db.database import Database
from markcast.models.datatypes import Segment
from markcast.store.segments import SegmentStore


SegmentFactory = Callable[..., Segment]


@pytest.fixture(autouse=True)
def _restore_default_log_sink() -> Iterator[None]:
    """Reattach loguru to stderr after tests that route it to a temporary sink."""

    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    return tmp_path / "markcast.db"


@pytest.fixture
def database(database_path: Path) -> Iterator[Database]:
    """Provide a fresh SQLite database with all tables created."""

    db = Database.from_path(database_path)
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def make_segment(database: Database, tmp_path: Path) -> SegmentFactory:
    """Create stored segments backed by small placeholder audio files."""

    store = SegmentStore(database)
    audio_dir = tmp_path / "segments"
    audio_dir.mkdir(parents=True, exist_ok=True)
    counter = itertools.count(1)

    def _create(
        article_id: int | None = None,
        *,
        duration_seconds: float | None = 10.0,
        write_file: bool = True,
    ) -> Segment:
        index = next(counter)
        path = audio_dir / f"segment_{index:03d}.mp3"
        if write_file:
            path.write_bytes(b"ID3-placeholder")
        segment = store.create(
            article_id=article_id if article_id is not None else index,
            file_path=path,
            duration_seconds=duration_seconds,
        )
        return segment

    return _create


class FakeFfmpeg:
    """Stand in for `subprocess.run` inside the concat engine.

    Records each command and writes placeholder bytes to the command's final
    argument (the temp output path), optionally failing afterwards.
    """

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.fail_with: str | None = None
        self.write_output = True

    def __call__(self, command: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        _ = kwargs
        self.commands.append(command)
        if self.write_output:
            Path(command[-1]).write_bytes(b"encoded-audio")
        if self.fail_with is not None:
            raise subprocess.CalledProcessError(1, command, stderr=self.fail_with)
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

    def inputs(self, run_index: int = -1) -> list[str]:
        command = self.commands[run_index]
        return [command[index + 1] for index, token in enumerate(command) if token == "-i"]

    def filter_graph(self, run_index: int = -1) -> str:
        command = self.commands[run_index]
        return command[command.index("-filter_complex") + 1]


@pytest.fixture
def fake_ffmpeg(monkeypatch: pytest.MonkeyPatch) -> FakeFfmpeg:
    """Replace ffmpeg and ffprobe calls made by the concat engine."""

    tool = FakeFfmpeg()
    monkeypatch.setattr("markcast.audio.concat.subprocess.run", tool)
    monkeypatch.setattr(
        "markcast.audio.concat.probe_duration_seconds",
        lambda path, ffprobe_binary: 42.0,
    )
    return tool
