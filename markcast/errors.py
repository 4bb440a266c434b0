"""Domain exceptions for assembly, playlist, and CLI diagnostics."""

from __future__ import annotations


class AssemblyError(RuntimeError):
    """Raised when a specific assembly or store stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class NotFoundError(AssemblyError):
    """Raised when a playlist, playlist item, segment, or ledger entry does not exist."""

    def __init__(
        self,
        *,
        stage: str,
        entity: str,
        identifier: object,
        hint: str | None = None,
    ) -> None:
        super().__init__(
            stage=stage,
            detail=f"{entity} not found: ID {identifier}",
            hint=hint,
        )
        self.entity = entity
        self.identifier = identifier


class InvalidInputError(AssemblyError):
    """Raised for empty id lists, blank names, or otherwise unusable arguments."""


class MissingAssetError(AssemblyError):
    """Raised when a fixed intro/outro asset is absent on disk."""


class TranscodeError(AssemblyError):
    """Raised when the external transcoding tool fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        diagnostic: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(stage=stage, detail=detail, hint=hint)
        self.diagnostic = diagnostic


class LockBusyError(AssemblyError):
    """Raised when another process holds the single-writer assembly lock."""
