"""External media tool helpers.

Responsibilities:
- Resolve `ffmpeg`/`ffprobe` with bundled-first precedence, then `PATH`.
- Measure audio durations with `ffprobe`.
"""

from __future__ import annotations

from pathlib import Path
import shutil
import subprocess
import sys

from loguru import logger


def resolve_executable(command_name: str) -> str:
    """Resolve an executable, preferring a bundled `bin/` copy over `PATH`.

    Falls back to the raw name so that `subprocess` raises its native
    missing-binary error.
    """

    normalized = command_name.strip()
    if not normalized:
        return command_name

    # Explicit paths from config are used as-is.
    if Path(normalized).parent != Path("."):
        return normalized

    for candidate in _bundled_candidates(normalized):
        if candidate.is_file():
            return str(candidate)

    resolved_path = shutil.which(normalized)
    if resolved_path is not None:
        return resolved_path
    return normalized


def probe_duration_seconds(path: Path, ffprobe_binary: str = "ffprobe") -> float | None:
    """Return the container duration of `path`, or `None` when it cannot be measured."""

    command = [
        resolve_executable(ffprobe_binary),
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]
    try:
        completed = subprocess.run(command, check=True, capture_output=True, text=True)
    except FileNotFoundError:
        logger.warning("ffprobe not available; duration left unmeasured path={}", path)
        return None
    except subprocess.CalledProcessError as exc:
        logger.warning(
            "ffprobe failed path={} stderr={}",
            path,
            (exc.stderr or "").strip() or "none",
        )
        return None

    raw = (completed.stdout or "").strip()
    try:
        return float(raw)
    except ValueError:
        logger.warning("ffprobe returned unparsable duration path={} value={!r}", path, raw)
        return None


def _bundled_candidates(command_name: str) -> list[Path]:
    """Return bundled candidate paths, including the Windows `.exe` variant."""

    app_root = _app_root()
    names = (command_name,) if command_name.lower().endswith(".exe") else (
        command_name,
        f"{command_name}.exe",
    )
    return [app_root / "bin" / name for name in names]


def _app_root() -> Path:
    """Resolve the application root for frozen and source runs."""

    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[2]
