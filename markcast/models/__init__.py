"""Shared typed data models for markcast.

This package contains dataclasses used across store, audio, and assembly
modules to avoid cross-module coupling and circular imports.
"""

from .datatypes import (
    AssemblyOutcome,
    AssemblyState,
    ConcatResult,
    MergedAudioFile,
    OutcomeStatus,
    Playlist,
    PlaylistItem,
    Segment,
    TimelineEntry,
)

__all__ = [
    "AssemblyOutcome",
    "AssemblyState",
    "ConcatResult",
    "MergedAudioFile",
    "OutcomeStatus",
    "Playlist",
    "PlaylistItem",
    "Segment",
    "TimelineEntry",
]
