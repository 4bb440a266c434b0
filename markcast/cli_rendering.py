"""CLI output and error rendering helpers.

This module centralizes user-facing presentation for command diagnostics,
assembly outcomes, playlist listings, ledger entries, and episode timelines.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .audio.timeline import format_timestamp
from .errors import AssemblyError
from .models.datatypes import (
    AssemblyOutcome,
    MergedAudioFile,
    OutcomeStatus,
    Playlist,
    PlaylistItem,
    Segment,
    TimelineEntry,
)


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, AssemblyError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_outcome(outcome: AssemblyOutcome) -> None:
    """Print a succeeded or skipped assembly outcome."""

    if outcome.status is OutcomeStatus.SKIPPED:
        typer.secho(f"Skipped: {outcome.message}", fg=typer.colors.YELLOW)
        return
    typer.secho(f"Succeeded: {outcome.message}", fg=typer.colors.GREEN)
    if outcome.merged is not None:
        echo_merged(outcome.merged)


def echo_merged(merged: MergedAudioFile) -> None:
    """Print one ledger entry."""

    duration = (
        f"{merged.duration_seconds:.2f}s" if merged.duration_seconds is not None else "unknown"
    )
    source_ids = ",".join(str(segment_id) for segment_id in merged.source_segment_ids)
    typer.echo(f"Merged audio file ID: {merged.id}")
    typer.echo(f"Name: {merged.name}")
    typer.echo(f"Path: {merged.file_path}")
    typer.echo(f"Source segments: {source_ids}")
    typer.echo(f"Duration: {duration}")


def echo_merged_rows(entries: list[MergedAudioFile]) -> None:
    """Print compact ledger rows, one per entry."""

    if not entries:
        typer.echo("No merged audio files.")
        return
    for entry in entries:
        typer.echo(
            f"{entry.id}. {entry.name} "
            f"({len(entry.source_segment_ids)} segments) {entry.file_path}"
        )


def echo_segments(segments: list[Segment]) -> None:
    """Print segment rows; empty lists print a notice instead."""

    if not segments:
        typer.echo("No unprocessed segments.")
        return
    for segment in segments:
        duration = (
            f"{segment.duration_seconds:.2f}s"
            if segment.duration_seconds is not None
            else "unknown"
        )
        typer.echo(
            f"{segment.id}. article={segment.article_id} duration={duration} {segment.file_path}"
        )


def echo_playlists(playlists: list[Playlist]) -> None:
    if not playlists:
        typer.echo("No playlists.")
        return
    for playlist in playlists:
        typer.echo(f"{playlist.id}. {playlist.name}")


def echo_playlist_items(playlist: Playlist, items: list[PlaylistItem]) -> None:
    """Print a playlist header and its items in position order."""

    typer.echo(f"Playlist {playlist.id}: {playlist.name}")
    if playlist.description:
        typer.echo(playlist.description)
    if not items:
        typer.echo("(empty)")
        return
    for item in items:
        typer.echo(f"{item.position}. segment={item.segment_id} item={item.id}")


def echo_timeline(entries: list[TimelineEntry]) -> None:
    """Print `HH:MM:SS` start markers, one per source segment."""

    for entry in entries:
        typer.echo(
            f"{format_timestamp(entry.start_seconds)} "
            f"article {entry.article_id} (segment {entry.segment_id})"
        )
