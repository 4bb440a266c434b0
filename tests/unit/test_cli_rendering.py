"""Unit tests for CLI output and error rendering helpers."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
import typer

from markcast.cli_rendering import (
    echo_outcome,
    echo_playlist_items,
    echo_segments,
    echo_timeline,
    exit_with_command_error,
)
from markcast.errors import NotFoundError
from markcast.models.datatypes import (
    AssemblyOutcome,
    AssemblyState,
    MergedAudioFile,
    OutcomeStatus,
    Playlist,
    PlaylistItem,
    TimelineEntry,
)

_NOW = datetime(2024, 5, 1, 7, 30)


def test_exit_with_command_error_renders_stage_error_with_hint(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Renderer should print stage diagnostics and hint before exiting with code 1."""

    error = NotFoundError(
        stage="resolve",
        entity="Segment",
        identifier=42,
        hint="Run `markcast unprocessed` to list known segment ids.",
    )

    with pytest.raises(typer.Exit) as exc_info:
        exit_with_command_error("merge-ids", error)

    captured = capsys.readouterr()
    assert exc_info.value.exit_code == 1
    assert "merge-ids failed at stage `resolve`: Segment not found: ID 42" in captured.err
    assert "Hint: Run `markcast unprocessed` to list known segment ids." in captured.err


def test_exit_with_command_error_renders_non_stage_fallback(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Renderer should print fallback exception text for non-stage failures."""

    with pytest.raises(typer.Exit) as exc_info:
        exit_with_command_error("ledger list", RuntimeError("database is locked"))

    captured = capsys.readouterr()
    assert exc_info.value.exit_code == 1
    assert "ledger list failed: database is locked" in captured.err


def test_echo_outcome_distinguishes_skipped_from_succeeded(
    capsys: pytest.CaptureFixture[str],
) -> None:
    merged = MergedAudioFile(
        id=3,
        name="Morning",
        file_path=Path("out/Morning.mp3"),
        source_segment_ids=(5, 7, 9),
        duration_seconds=None,
        silence_seconds=1.3,
        with_intro_outro=False,
        created_at=_NOW,
    )

    echo_outcome(
        AssemblyOutcome(
            status=OutcomeStatus.SKIPPED,
            state=AssemblyState.SKIPPED_EMPTY,
            message="No unprocessed segments.",
        )
    )
    echo_outcome(
        AssemblyOutcome(
            status=OutcomeStatus.SUCCEEDED,
            state=AssemblyState.SUCCEEDED,
            message="Merged 3 segment(s).",
            merged=merged,
        )
    )

    output = capsys.readouterr().out
    assert "Skipped: No unprocessed segments." in output
    assert "Succeeded: Merged 3 segment(s)." in output
    assert "Source segments: 5,7,9" in output
    assert "Duration: unknown" in output


def test_echo_segments_prints_notice_for_empty_list(
    capsys: pytest.CaptureFixture[str],
) -> None:
    echo_segments([])

    assert capsys.readouterr().out.strip() == "No unprocessed segments."


def test_echo_playlist_items_lists_positions_in_order(
    capsys: pytest.CaptureFixture[str],
) -> None:
    playlist = Playlist(id=1, name="Weekly", description="", created_at=_NOW)
    items = [
        PlaylistItem(id=11, playlist_id=1, segment_id=9, position=1),
        PlaylistItem(id=10, playlist_id=1, segment_id=4, position=2),
    ]

    echo_playlist_items(playlist, items)

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "Playlist 1: Weekly",
        "1. segment=9 item=11",
        "2. segment=4 item=10",
    ]


def test_echo_timeline_renders_hh_mm_ss_markers(
    capsys: pytest.CaptureFixture[str],
) -> None:
    echo_timeline(
        [
            TimelineEntry(segment_id=5, article_id=50, start_seconds=0.0, duration_seconds=61.0),
            TimelineEntry(segment_id=7, article_id=70, start_seconds=62.3, duration_seconds=None),
        ]
    )

    assert capsys.readouterr().out.splitlines() == [
        "00:00:00 article 50 (segment 5)",
        "00:01:02 article 70 (segment 7)",
    ]
