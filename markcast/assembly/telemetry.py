"""State telemetry helpers for the assembly orchestrator.

Responsibilities:
- Provide state index/total metadata for progress reporting.
- Emit state start/complete/failure events and terminal outcomes.
- Track which states one invocation visited.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from ..models.datatypes import AssemblyState
from ..telemetry.logger import RunLogger

_StageResult = TypeVar("_StageResult")

StageProgressCallback = Callable[[str, int, int], None]


class AssemblyTelemetryMixin:
    """Provide state-telemetry helper methods."""

    _STATE_SEQUENCE = (
        AssemblyState.RESOLVING,
        AssemblyState.VALIDATING,
        AssemblyState.CONCATENATING,
        AssemblyState.RECORDING,
    )

    _run_logger: RunLogger | None
    _stage_progress_callback: StageProgressCallback | None
    _visited: list[AssemblyState]

    def _reset_visited(self) -> None:
        self._visited = []

    def _visited_states(self) -> tuple[AssemblyState, ...]:
        return tuple(self._visited)

    def _stage_position(self, state: AssemblyState) -> tuple[int, int] | None:
        """Return 1-based state index and total state count for known states."""

        try:
            index = self._STATE_SEQUENCE.index(state) + 1
        except ValueError:
            return None
        return index, len(self._STATE_SEQUENCE)

    def _on_stage_start(self, state: AssemblyState) -> None:
        self._visited.append(state)
        position = self._stage_position(state)
        if position and self._stage_progress_callback is not None:
            self._stage_progress_callback(state.value, position[0], position[1])
        if self._run_logger is not None:
            self._run_logger.log_stage_start(state.value)

    def _on_stage_complete(self, state: AssemblyState) -> None:
        if self._run_logger is not None:
            self._run_logger.log_stage_complete(state.value)

    def _on_stage_failure(self, state: AssemblyState, exc: Exception) -> None:
        if self._run_logger is not None:
            self._run_logger.log_stage_failure(state.value, type(exc).__name__)

    def _on_outcome(self, state: AssemblyState, **context: object) -> None:
        if self._run_logger is not None:
            self._run_logger.log_outcome(state.value, **context)

    def _run_stage(
        self,
        state: AssemblyState,
        action: Callable[[], _StageResult],
    ) -> _StageResult:
        """Run one named state and emit start/complete/failure events."""

        self._on_stage_start(state)
        try:
            result = action()
        except Exception as exc:
            self._on_stage_failure(state, exc)
            raise
        self._on_stage_complete(state)
        return result
