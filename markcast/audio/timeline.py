"""Episode timeline markers for merged outputs."""

from __future__ import annotations

from collections.abc import Sequence

from ..models.datatypes import MergedAudioFile, Segment, TimelineEntry


def build_timeline(
    merged: MergedAudioFile,
    segments: Sequence[Segment],
    *,
    intro_seconds: float | None = None,
) -> list[TimelineEntry]:
    """Return the start offset of each source segment inside `merged`.

    `segments` must be in the ledger entry's source order. A segment with an
    unknown duration contributes zero, so later offsets are lower bounds.
    """

    offset = 0.0
    if merged.with_intro_outro:
        offset = (intro_seconds or 0.0) + merged.silence_seconds

    entries: list[TimelineEntry] = []
    for segment in segments:
        entries.append(
            TimelineEntry(
                segment_id=segment.id,
                article_id=segment.article_id,
                start_seconds=offset,
                duration_seconds=segment.duration_seconds,
            )
        )
        offset += (segment.duration_seconds or 0.0) + merged.silence_seconds
    return entries


def format_timestamp(seconds: float) -> str:
    """Render seconds as `HH:MM:SS`, truncating fractions."""

    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
