"""Core datatypes shared across markcast modules.

Responsibilities:
- Represent immutable records read from and written to the stores.
- Describe assembly outcomes and state-machine positions explicitly.

Key types:
- `Segment`, `Playlist`, `PlaylistItem`, `MergedAudioFile`, `ConcatResult`,
  `TimelineEntry`, `AssemblyOutcome`, `AssemblyState`, and `OutcomeStatus`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


@dataclass(frozen=True, slots=True)
class Segment:
    """One synthesized narration clip tied to a single source article.

    Attributes:
        id: Store-assigned identifier, monotonically increasing.
        article_id: Identifier of the owning article/bookmark.
        file_path: Location of the playable audio file.
        duration_seconds: Measured duration, `None` until measured.
        created_at: Creation timestamp.
    """

    id: int
    article_id: int
    file_path: Path
    duration_seconds: float | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Playlist:
    """A named, user-ordered container of segments."""

    id: int
    name: str
    description: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class PlaylistItem:
    """One playlist membership with its explicit 1-based rank.

    Attributes:
        id: Item identifier.
        playlist_id: Owning playlist identifier.
        segment_id: Referenced segment identifier.
        position: 1-based position, contiguous within the playlist.
    """

    id: int
    playlist_id: int
    segment_id: int
    position: int


@dataclass(frozen=True, slots=True)
class MergedAudioFile:
    """One assembly ledger entry describing a produced output file.

    Attributes:
        id: Ledger identifier.
        name: Display name.
        file_path: Produced output file.
        source_segment_ids: Ordered segment ids consumed to build the file.
        duration_seconds: Measured output duration, when known.
        silence_seconds: Gap inserted between consecutive inputs.
        with_intro_outro: Whether the fixed intro/outro wrapped the segments.
        created_at: Creation timestamp.
    """

    id: int
    name: str
    file_path: Path
    source_segment_ids: tuple[int, ...]
    duration_seconds: float | None
    silence_seconds: float
    with_intro_outro: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class ConcatResult:
    """Result of one successful concatenation run."""

    output_path: Path
    duration_seconds: float | None
    input_count: int
    gap_count: int


@dataclass(frozen=True, slots=True)
class TimelineEntry:
    """Start offset of one source segment inside a merged output."""

    segment_id: int
    article_id: int | None
    start_seconds: float
    duration_seconds: float | None


class AssemblyState(str, Enum):
    """States an assembly invocation moves through, including terminal states."""

    RESOLVING = "resolve"
    VALIDATING = "validate"
    CONCATENATING = "concatenate"
    RECORDING = "record"
    SUCCEEDED = "succeeded"
    SKIPPED_EMPTY = "skipped"
    FAILED_VALIDATION = "failed_validation"
    FAILED_TRANSCODE = "failed_transcode"


class OutcomeStatus(str, Enum):
    """User-visible operation outcome."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class AssemblyOutcome:
    """Outcome of one orchestrator invocation.

    Attributes:
        status: Succeeded or skipped; failures are raised as `AssemblyError`.
        state: Terminal state reached.
        message: Human-readable summary or skip reason.
        merged: Ledger entry written on success.
        visited_states: Ordered non-terminal states traversed.
    """

    status: OutcomeStatus
    state: AssemblyState
    message: str
    merged: MergedAudioFile | None = None
    visited_states: tuple[AssemblyState, ...] = field(default_factory=tuple)
