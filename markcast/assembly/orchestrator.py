"""Assembly orchestrator: decide what to merge, merge it, record it.

Responsibilities:
- Resolve segment ids from an explicit list, a playlist, or the
  unprocessed set.
- Validate inputs before touching the filesystem.
- Call the concatenation engine, then write exactly one ledger row.

A ledger row exists if and only if its output file was fully produced: the
engine renames its output into place only on success, and a failed ledger
insert removes the fresh output before re-raising.

Key public types:
- `AssemblyOrchestrator`: `merge_by_ids`, `merge_playlist`, `merge_unprocessed`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager, nullcontext
from datetime import datetime
from pathlib import Path

from loguru import logger

from ..audio.assets import IntroOutroAssets
from ..audio.concat import AudioConcatenator
from ..config import MarkcastConfig
from ..db.database import Database
from ..db.schema import utcnow
from ..errors import (
    InvalidInputError,
    MissingAssetError,
    NotFoundError,
    TranscodeError,
)
from ..models.datatypes import (
    AssemblyOutcome,
    AssemblyState,
    ConcatResult,
    MergedAudioFile,
    OutcomeStatus,
    Segment,
)
from ..parsing import normalize_optional_string
from ..store.ledger import AssemblyLedger, UnprocessedSegmentResolver
from ..store.locks import AssemblyLock
from ..store.playlists import PlaylistStore
from ..store.segments import SegmentStore
from ..telemetry.logger import RunLogger
from ..text.slug import unique_output_path
from .telemetry import AssemblyTelemetryMixin, StageProgressCallback


class AssemblyOrchestrator(AssemblyTelemetryMixin):
    """Compose stores, resolver, and concatenation engine into merge operations."""

    def __init__(
        self,
        *,
        segments: SegmentStore,
        playlists: PlaylistStore,
        ledger: AssemblyLedger,
        resolver: UnprocessedSegmentResolver,
        concatenator: AudioConcatenator,
        output_dir: Path,
        silence_seconds: float,
        output_format: str = "mp3",
        assets: IntroOutroAssets | None = None,
        lock: AssemblyLock | None = None,
        run_logger: RunLogger | None = None,
        stage_progress_callback: StageProgressCallback | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._segments = segments
        self._playlists = playlists
        self._ledger = ledger
        self._resolver = resolver
        self._concatenator = concatenator
        self._output_dir = output_dir
        self._silence_seconds = silence_seconds
        self._output_format = output_format
        self._assets = assets
        self._lock = lock
        self._run_logger = run_logger
        self._stage_progress_callback = stage_progress_callback
        self._clock = clock
        self._visited = []

    @classmethod
    def from_config(
        cls,
        config: MarkcastConfig,
        database: Database,
        *,
        run_logger: RunLogger | None = None,
        stage_progress_callback: StageProgressCallback | None = None,
    ) -> "AssemblyOrchestrator":
        """Wire an orchestrator whose stores all share `database`."""

        ledger = AssemblyLedger(database)
        return cls(
            segments=SegmentStore(database),
            playlists=PlaylistStore(database),
            ledger=ledger,
            resolver=UnprocessedSegmentResolver(database),
            concatenator=AudioConcatenator(
                ffmpeg_binary=config.ffmpeg_binary,
                ffprobe_binary=config.ffprobe_binary,
                sample_rate=config.sample_rate,
            ),
            output_dir=config.audio_output_dir,
            silence_seconds=config.silence_seconds,
            output_format=config.output_format,
            assets=IntroOutroAssets(
                intro_path=config.intro_path,
                outro_path=config.outro_path,
                intro_text=config.intro_text,
                outro_text=config.outro_text,
            ),
            lock=AssemblyLock(database, stale_after_seconds=config.lock_stale_seconds),
            run_logger=run_logger,
            stage_progress_callback=stage_progress_callback,
        )

    # Public operations

    def merge_by_ids(
        self,
        segment_ids: Sequence[int],
        name: str,
        *,
        silence_seconds: float | None = None,
    ) -> AssemblyOutcome:
        """Merge segments in the given order and record the ids verbatim.

        Raises:
            InvalidInputError: Empty id list or blank name.
            NotFoundError: Any id without a stored segment; nothing is written.
            TranscodeError: Concatenation failed; no ledger row is written.
        """

        with self._invocation():
            segments = self._run_stage(
                AssemblyState.RESOLVING,
                lambda: self._resolve_explicit(segment_ids, name),
            )
            return self._assemble(segments, name, silence_seconds, with_intro_outro=False)

    def merge_playlist(
        self,
        playlist_id: int,
        name: str | None = None,
        *,
        silence_seconds: float | None = None,
    ) -> AssemblyOutcome:
        """Merge a playlist's segments in position order.

        Returns a skipped outcome when the playlist has no items. The default
        name is derived from the playlist name.
        """

        with self._invocation():
            resolved = self._run_stage(
                AssemblyState.RESOLVING,
                lambda: self._resolve_playlist(playlist_id, name),
            )
            if resolved is None:
                return self._skipped(f"Playlist {playlist_id} has no items.")
            segments, merged_name = resolved
            return self._assemble(segments, merged_name, silence_seconds, with_intro_outro=False)

    def merge_unprocessed(
        self,
        name: str | None = None,
        *,
        with_intro_outro: bool = False,
        silence_seconds: float | None = None,
    ) -> AssemblyOutcome:
        """Merge every segment absent from the ledger, ascending by id.

        Returns a skipped outcome when nothing is unprocessed.

        Raises:
            MissingAssetError: `with_intro_outro` is set and either clip is absent.
        """

        with self._invocation():
            segments = self._run_stage(AssemblyState.RESOLVING, self._resolver.find_unprocessed)
            if not segments:
                return self._skipped("No unprocessed segments.")
            merged_name = normalize_optional_string(name) or self._default_unprocessed_name()
            return self._assemble(
                segments,
                merged_name,
                silence_seconds,
                with_intro_outro=with_intro_outro,
            )

    # Resolution

    def _resolve_explicit(self, segment_ids: Sequence[int], name: str) -> list[Segment]:
        if not segment_ids:
            raise InvalidInputError(
                stage=AssemblyState.RESOLVING.value,
                detail="No segment ids were given to merge.",
            )
        if normalize_optional_string(name) is None:
            raise InvalidInputError(
                stage=AssemblyState.RESOLVING.value,
                detail="A merged audio file name is required.",
            )
        return self._segments.get_many(segment_ids)

    def _resolve_playlist(
        self,
        playlist_id: int,
        name: str | None,
    ) -> tuple[list[Segment], str] | None:
        playlist = self._playlists.get(playlist_id)
        if playlist is None:
            raise NotFoundError(
                stage=AssemblyState.RESOLVING.value,
                entity="Playlist",
                identifier=playlist_id,
            )
        segment_ids = self._playlists.segment_ids(playlist_id)
        if not segment_ids:
            return None
        merged_name = normalize_optional_string(name) or f"Playlist_{playlist.name}"
        return self._segments.get_many(segment_ids), merged_name

    # Validate → concatenate → record

    def _assemble(
        self,
        segments: list[Segment],
        name: str,
        silence_seconds: float | None,
        *,
        with_intro_outro: bool,
    ) -> AssemblyOutcome:
        silence = self._silence_seconds if silence_seconds is None else silence_seconds
        intro, outro, output_path = self._run_stage(
            AssemblyState.VALIDATING,
            lambda: self._validate(segments, name, silence, with_intro_outro),
        )
        result: ConcatResult = self._run_stage(
            AssemblyState.CONCATENATING,
            lambda: self._concatenator.concatenate(
                [segment.file_path for segment in segments],
                output_path,
                silence,
                intro_file=intro,
                outro_file=outro,
            ),
        )
        merged: MergedAudioFile = self._run_stage(
            AssemblyState.RECORDING,
            lambda: self._record(segments, name, result, silence, with_intro_outro),
        )
        self._on_outcome(
            AssemblyState.SUCCEEDED,
            merged_id=merged.id,
            segments=len(merged.source_segment_ids),
        )
        return AssemblyOutcome(
            status=OutcomeStatus.SUCCEEDED,
            state=AssemblyState.SUCCEEDED,
            message=f"Merged {len(segments)} segment(s) into `{merged.file_path.name}`.",
            merged=merged,
            visited_states=self._visited_states(),
        )

    def _validate(
        self,
        segments: list[Segment],
        name: str,
        silence: float,
        with_intro_outro: bool,
    ) -> tuple[Path | None, Path | None, Path]:
        stage = AssemblyState.VALIDATING.value
        if silence < 0:
            raise InvalidInputError(
                stage=stage,
                detail=f"Silence duration must be non-negative, got {silence}.",
            )
        intro: Path | None = None
        outro: Path | None = None
        if with_intro_outro:
            if self._assets is None:
                raise MissingAssetError(
                    stage=stage,
                    detail="Intro/outro was requested but no assets are configured.",
                )
            intro, outro = self._assets.require()
        for segment in segments:
            if not segment.file_path.is_file():
                raise NotFoundError(
                    stage=stage,
                    entity=f"Audio file for segment {segment.id}",
                    identifier=segment.file_path,
                    hint="Re-run synthesis for the segment or correct its file path.",
                )
        output_path = unique_output_path(
            self._output_dir,
            name,
            self._clock(),
            self._output_format,
        )
        return intro, outro, output_path

    def _record(
        self,
        segments: list[Segment],
        name: str,
        result: ConcatResult,
        silence: float,
        with_intro_outro: bool,
    ) -> MergedAudioFile:
        try:
            return self._ledger.record(
                name=name,
                file_path=result.output_path,
                source_segment_ids=[segment.id for segment in segments],
                duration_seconds=result.duration_seconds,
                silence_seconds=silence,
                with_intro_outro=with_intro_outro,
            )
        except Exception:
            logger.warning(
                "ledger insert failed; removing unrecorded output path={}",
                result.output_path,
            )
            result.output_path.unlink(missing_ok=True)
            raise

    # Invocation scaffolding

    @contextmanager
    def _invocation(self) -> Iterator[None]:
        """Reset per-run state, hold the writer lock, and log failure outcomes.

        Transcode errors end in `failed_transcode`; every other error,
        including database failures, ends in `failed_validation`.
        """

        self._reset_visited()
        lock_scope = self._lock.held() if self._lock is not None else nullcontext()
        try:
            with lock_scope:
                yield
        except TranscodeError as exc:
            self._on_outcome(AssemblyState.FAILED_TRANSCODE, error_type=type(exc).__name__)
            raise
        except Exception as exc:
            self._on_outcome(AssemblyState.FAILED_VALIDATION, error_type=type(exc).__name__)
            raise

    def _skipped(self, reason: str) -> AssemblyOutcome:
        self._on_outcome(AssemblyState.SKIPPED_EMPTY)
        return AssemblyOutcome(
            status=OutcomeStatus.SKIPPED,
            state=AssemblyState.SKIPPED_EMPTY,
            message=reason,
            visited_states=self._visited_states(),
        )

    def _default_unprocessed_name(self) -> str:
        return f"Episode_{self._clock().strftime('%Y-%m-%d')}"
