"""Concatenation engine: ordered audio file list to one output file.

Responsibilities:
- Validate every input before invoking the transcoder.
- Join inputs (optionally wrapped in a fixed intro/outro) with silence gaps
  in one ffmpeg pass.
- Never leave a partial file at the output path: ffmpeg writes to a hidden
  sibling temp file that is renamed into place only after success.

This module knows nothing about playlists, segments, or the ledger.
"""

from __future__ import annotations

from collections.abc import Sequence
import os
from pathlib import Path
import subprocess

from loguru import logger

from ..errors import InvalidInputError, NotFoundError, TranscodeError
from ..models.datatypes import ConcatResult
from ..parsing import normalize_optional_string
from .filtergraph import OUTPUT_LABEL, build_concat_filter, gap_count
from .probe import probe_duration_seconds, resolve_executable


class AudioConcatenator:
    """Join audio files with `ffmpeg` using a silence-padded concat graph."""

    _STAGE = "concatenate"
    _ENCODING_PROFILES = {
        ".mp3": ("libmp3lame", "128k"),
        ".m4a": ("aac", "128k"),
        ".wav": ("pcm_s16le", None),
    }

    def __init__(
        self,
        *,
        ffmpeg_binary: str = "ffmpeg",
        ffprobe_binary: str = "ffprobe",
        sample_rate: int = 24000,
        channel_layout: str = "mono",
    ) -> None:
        self.ffmpeg_binary = ffmpeg_binary
        self.ffprobe_binary = ffprobe_binary
        self.sample_rate = sample_rate
        self.channel_layout = channel_layout

    def concatenate(
        self,
        input_files: Sequence[Path],
        output_file: Path,
        silence_seconds: float,
        *,
        intro_file: Path | None = None,
        outro_file: Path | None = None,
    ) -> ConcatResult:
        """Join `input_files` in order into `output_file`.

        Intro/outro become ordinary first/last list elements, so they are
        separated from the segments by the same silence gap.

        Raises:
            InvalidInputError: Empty input list, negative silence, or unsupported extension.
            NotFoundError: Any input file is missing (ffmpeg is not started).
            TranscodeError: ffmpeg is missing or exits non-zero; no output is kept.
        """

        effective = self._effective_inputs(input_files, intro_file, outro_file)
        self._validate(effective, output_file, silence_seconds)

        output_file.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._temp_path(output_file)
        command = self._build_command(effective, temp_path, silence_seconds)
        logger.debug("ffmpeg concat inputs={} output={}", len(effective), output_file)

        try:
            self._run_tool(command)
            if not temp_path.is_file() or temp_path.stat().st_size == 0:
                raise TranscodeError(
                    stage=self._STAGE,
                    detail=f"ffmpeg produced no audio for `{output_file.name}`.",
                )
            os.replace(temp_path, output_file)
        finally:
            if temp_path.exists():
                temp_path.unlink()

        duration = probe_duration_seconds(output_file, self.ffprobe_binary)
        return ConcatResult(
            output_path=output_file,
            duration_seconds=duration,
            input_count=len(effective),
            gap_count=gap_count(len(effective), silence_seconds),
        )

    def _effective_inputs(
        self,
        input_files: Sequence[Path],
        intro_file: Path | None,
        outro_file: Path | None,
    ) -> list[Path]:
        if not input_files:
            raise InvalidInputError(
                stage=self._STAGE,
                detail="At least one input audio file is required.",
            )
        effective = list(input_files)
        if intro_file is not None:
            effective.insert(0, intro_file)
        if outro_file is not None:
            effective.append(outro_file)
        return effective

    def _validate(self, inputs: list[Path], output_file: Path, silence_seconds: float) -> None:
        if silence_seconds < 0:
            raise InvalidInputError(
                stage=self._STAGE,
                detail=f"Silence duration must be non-negative, got {silence_seconds}.",
            )
        if output_file.suffix.lower() not in self._ENCODING_PROFILES:
            supported = ", ".join(sorted(self._ENCODING_PROFILES))
            raise InvalidInputError(
                stage=self._STAGE,
                detail=f"Unsupported output extension `{output_file.suffix}`. Supported: {supported}.",
            )
        for path in inputs:
            if not path.is_file():
                raise NotFoundError(
                    stage=self._STAGE,
                    entity="Input audio file",
                    identifier=path,
                    hint="Re-run synthesis for the affected segment or fix its file path.",
                )

    def _temp_path(self, output_file: Path) -> Path:
        return output_file.with_name(f".{output_file.stem}.partial{output_file.suffix}")

    def _build_command(self, inputs: list[Path], temp_path: Path, silence_seconds: float) -> list[str]:
        codec, bitrate = self._ENCODING_PROFILES[temp_path.suffix.lower()]
        command = [
            resolve_executable(self.ffmpeg_binary),
            "-y",
            "-hide_banner",
            "-loglevel",
            "error",
        ]
        for path in inputs:
            command.extend(["-i", str(path)])
        command.extend(
            [
                "-filter_complex",
                build_concat_filter(
                    len(inputs),
                    silence_seconds,
                    sample_rate=self.sample_rate,
                    channel_layout=self.channel_layout,
                ),
                "-map",
                f"[{OUTPUT_LABEL}]",
                "-vn",
                "-map_metadata",
                "-1",
                "-c:a",
                codec,
            ]
        )
        if bitrate is not None:
            command.extend(["-b:a", bitrate])
        command.append(str(temp_path))
        return command

    def _run_tool(self, command: list[str]) -> None:
        """Run ffmpeg to completion and map failures to `TranscodeError`."""

        try:
            subprocess.run(command, check=True, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise TranscodeError(
                stage=self._STAGE,
                detail="Transcoding tool `ffmpeg` is not available on PATH.",
                hint="Install ffmpeg or set `ffmpeg_binary` in the config.",
            ) from exc
        except subprocess.CalledProcessError as exc:
            stderr = normalize_optional_string(exc.stderr) or "no stderr output"
            raise TranscodeError(
                stage=self._STAGE,
                detail=f"ffmpeg concatenation failed: {stderr}",
                diagnostic=stderr,
                hint="Check that every input is a readable audio file and the disk has space.",
            ) from exc
