"""Unit tests for media tool resolution, duration probing, and run logging."""

from __future__ import annotations

import io
from pathlib import Path
import subprocess

import pytest

from markcast.audio import probe
from markcast.audio.probe import probe_duration_seconds, resolve_executable
from markcast.telemetry.logger import RunLogger


def test_resolve_executable_keeps_explicit_paths() -> None:
    assert resolve_executable("/opt/ffmpeg/bin/ffmpeg") == "/opt/ffmpeg/bin/ffmpeg"


def test_resolve_executable_prefers_bundled_binary(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    bundled = tmp_path / "bin" / "ffmpeg"
    bundled.parent.mkdir()
    bundled.write_bytes(b"")
    monkeypatch.setattr(probe, "_app_root", lambda: tmp_path)
    monkeypatch.setattr(probe.shutil, "which", lambda name: "/usr/bin/ffmpeg")

    assert resolve_executable("ffmpeg") == str(bundled)


def test_resolve_executable_falls_back_to_path_then_raw_name(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setattr(probe, "_app_root", lambda: tmp_path)
    monkeypatch.setattr(probe.shutil, "which", lambda name: "/usr/bin/ffprobe")
    assert resolve_executable("ffprobe") == "/usr/bin/ffprobe"

    monkeypatch.setattr(probe.shutil, "which", lambda name: None)
    assert resolve_executable("ffprobe") == "ffprobe"


def test_probe_duration_parses_ffprobe_output(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_run(command: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        return subprocess.CompletedProcess(command, 0, stdout="12.345000\n", stderr="")

    monkeypatch.setattr("markcast.audio.probe.subprocess.run", _fake_run)

    assert probe_duration_seconds(Path("episode.mp3")) == 12.345


@pytest.mark.parametrize(
    "failure",
    [
        FileNotFoundError("ffprobe"),
        subprocess.CalledProcessError(1, ["ffprobe"], stderr="moov atom not found"),
    ],
)
def test_probe_duration_returns_none_when_unmeasurable(
    monkeypatch: pytest.MonkeyPatch, failure: Exception
) -> None:
    def _failing_run(command: list[str], **kwargs: object) -> None:
        raise failure

    monkeypatch.setattr("markcast.audio.probe.subprocess.run", _failing_run)

    assert probe_duration_seconds(Path("episode.mp3")) is None


def test_probe_duration_returns_none_for_unparsable_output(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(
        "markcast.audio.probe.subprocess.run",
        lambda command, **kwargs: subprocess.CompletedProcess(command, 0, stdout="N/A\n"),
    )

    assert probe_duration_seconds(Path("episode.mp3")) is None


def test_run_logger_emits_deterministic_state_lines() -> None:
    sink = io.StringIO()
    run_logger = RunLogger(sink=sink)

    run_logger.log_stage_start("resolve")
    run_logger.log_stage_failure("concatenate", "TranscodeError")
    run_logger.log_outcome("failed_transcode", merged_id=None, reason="disk full!")
    run_logger.log_outcome("succeeded", segments=3, merged_id=7)

    assert sink.getvalue().splitlines() == [
        "[phase] level=INFO stage=resolve event=start",
        "[phase] level=ERROR stage=concatenate event=failure error_type=TranscodeError",
        "[phase] level=ERROR stage=failed_transcode event=outcome merged_id=None reason=disk_full_",
        "[phase] level=INFO stage=succeeded event=outcome merged_id=7 segments=3",
    ]
