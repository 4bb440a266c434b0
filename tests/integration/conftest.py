"""Integration-test fixtures: a YAML config and a pre-populated database."""

from __future__ import annotations

from pathlib import Path

import pytest

from markcast.db.database import Database
from markcast.store.segments import SegmentStore


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables out of CLI config resolution."""

    for key in (
        "MARKCAST_DATABASE_PATH",
        "MARKCAST_AUDIO_OUTPUT_DIR",
        "MARKCAST_SILENCE_SECONDS",
        "MARKCAST_OUTPUT_FORMAT",
        "MARKCAST_INTRO_PATH",
        "MARKCAST_OUTRO_PATH",
        "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def cli_config(tmp_path: Path) -> Path:
    """Write a config pointing every path into the test directory."""

    config_path = tmp_path / "markcast.yaml"
    config_path.write_text(
        "\n".join(
            [
                f"database_path: {tmp_path / 'markcast.db'}",
                f"audio_output_dir: {tmp_path / 'out'}",
                f"intro_path: {tmp_path / 'assets' / 'intro.mp3'}",
                f"outro_path: {tmp_path / 'assets' / 'outro.mp3'}",
                "silence_seconds: 1.0",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    return config_path


@pytest.fixture
def seeded_segments(tmp_path: Path) -> list[int]:
    """Store nine segments with placeholder audio; return their ids."""

    database = Database.from_path(tmp_path / "markcast.db")
    database.create_schema()
    store = SegmentStore(database)
    audio_dir = tmp_path / "segments"
    audio_dir.mkdir()
    ids: list[int] = []
    for index in range(1, 10):
        path = audio_dir / f"segment_{index}.mp3"
        path.write_bytes(b"ID3")
        ids.append(
            store.create(article_id=index * 10, file_path=path, duration_seconds=30.0).id
        )
    database.dispose()
    return ids
