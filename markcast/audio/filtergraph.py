"""Pure ffmpeg filter-graph construction for silence-padded concatenation.

Every input except the last gets trailing silence via `apad`; all streams
are then joined in input order by one `concat` filter. Inputs are first
normalized with `aformat` so clips from different encoders can be joined.
"""

from __future__ import annotations

OUTPUT_LABEL = "out"


def format_seconds(value: float) -> str:
    """Render seconds for ffmpeg option values without exponent notation."""

    rendered = f"{value:.3f}".rstrip("0").rstrip(".")
    return rendered or "0"


def _pads(silence_seconds: float) -> bool:
    """Whether the silence survives millisecond rendering as a non-zero pad."""

    return silence_seconds > 0 and format_seconds(silence_seconds) != "0"


def build_concat_filter(
    segment_count: int,
    silence_seconds: float,
    *,
    sample_rate: int = 24000,
    channel_layout: str = "mono",
) -> str:
    """Return a `-filter_complex` graph joining `segment_count` inputs.

    Example for three inputs and 1.3 s of silence (normalization omitted)::

        [0:a]...,apad=pad_dur=1.3[a0];[1:a]...,apad=pad_dur=1.3[a1];[2:a]...[a2];
        [a0][a1][a2]concat=n=3:v=0:a=1[out]

    Raises:
        ValueError: If `segment_count` is below one or `silence_seconds` is negative.
    """

    if segment_count < 1:
        raise ValueError("At least one input is required to build a concat graph.")
    if silence_seconds < 0:
        raise ValueError("Silence duration must be non-negative.")

    normalize = f"aformat=sample_fmts=fltp:sample_rates={sample_rate}:channel_layouts={channel_layout}"
    pad = f"apad=pad_dur={format_seconds(silence_seconds)}" if _pads(silence_seconds) else None

    chains: list[str] = []
    labels: list[str] = []
    for index in range(segment_count):
        filters = [normalize]
        if pad is not None and index < segment_count - 1:
            filters.append(pad)
        label = f"a{index}"
        chains.append(f"[{index}:a]{','.join(filters)}[{label}]")
        labels.append(f"[{label}]")

    joined = "".join(labels)
    chains.append(f"{joined}concat=n={segment_count}:v=0:a=1[{OUTPUT_LABEL}]")
    return ";".join(chains)


def gap_count(segment_count: int, silence_seconds: float) -> int:
    """Return how many silence gaps a graph for these inputs inserts."""

    if segment_count < 1 or not _pads(silence_seconds):
        return 0
    return segment_count - 1
