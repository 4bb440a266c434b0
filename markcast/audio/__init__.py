"""Audio concatenation, filter-graph, asset, and timeline components."""

from .assets import IntroOutroAssets
from .concat import AudioConcatenator
from .filtergraph import build_concat_filter
from .timeline import build_timeline, format_timestamp

__all__ = [
    "AudioConcatenator",
    "IntroOutroAssets",
    "build_concat_filter",
    "build_timeline",
    "format_timestamp",
]
