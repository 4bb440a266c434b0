"""Filesystem-safe naming for merged audio outputs.

Responsibilities:
- Turn free-form episode names into safe filename stems, keeping non-ASCII
  word characters (titles are often Japanese).
- Derive a unique timestamped output path inside an output directory.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
import re
import unicodedata


def safe_filename_stem(name: str) -> str:
    """Replace characters unsafe in filenames with `_` and collapse whitespace."""

    normalized = unicodedata.normalize("NFKC", name).strip()
    replaced = re.sub(r"[^\w\s-]", "_", normalized)
    collapsed = re.sub(r"\s+", "_", replaced).strip("_")
    return collapsed or "episode"


def timestamp_token(moment: datetime) -> str:
    """Render `moment` as an ISO-like token with `:` and `.` replaced by `-`."""

    return moment.isoformat(timespec="milliseconds").replace(":", "-").replace(".", "-")


def unique_output_path(
    output_dir: Path,
    name: str,
    moment: datetime,
    extension: str,
) -> Path:
    """Return `<dir>/<stem>_<timestamp>.<ext>`, suffixing `-N` on collision."""

    suffix = extension.lower().lstrip(".")
    base = f"{safe_filename_stem(name)}_{timestamp_token(moment)}"
    candidate = output_dir / f"{base}.{suffix}"
    counter = 2
    while candidate.exists():
        candidate = output_dir / f"{base}-{counter}.{suffix}"
        counter += 1
    return candidate
