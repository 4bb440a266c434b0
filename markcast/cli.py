"""Command-line interface for markcast.

Responsibilities:
- Expose merge, playlist, ledger, and asset commands.
- Convert CLI arguments into `MarkcastConfig` overrides and store handles.
- Report every operation as succeeded, skipped, or failed (exit code 1).

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer

from .assembly.orchestrator import AssemblyOrchestrator
from .audio.assets import IntroOutroAssets
from .audio.probe import probe_duration_seconds
from .audio.timeline import build_timeline
from .cli_rendering import (
    echo_merged,
    echo_merged_rows,
    echo_outcome,
    echo_playlist_items,
    echo_playlists,
    echo_segments,
    echo_timeline,
    exit_with_command_error,
)
from .config import ConfigLoader, MarkcastConfig
from .db.database import Database
from .errors import AssemblyError, NotFoundError
from .parsing import parse_id_list
from .store.ledger import AssemblyLedger, UnprocessedSegmentResolver
from .store.playlists import PlaylistStore
from .store.segments import SegmentStore
from .telemetry.logger import RunLogger
from .tts.speech import OpenAISpeechClient

app = typer.Typer(
    name="markcast",
    no_args_is_help=True,
    help="Assemble narrated bookmark segments into publishable episodes.",
)
playlist_app = typer.Typer(no_args_is_help=True, help="Manage ordered playlists.")
ledger_app = typer.Typer(no_args_is_help=True, help="Inspect merged audio files.")
assets_app = typer.Typer(no_args_is_help=True, help="Manage the fixed intro/outro clips.")
app.add_typer(playlist_app, name="playlist")
app.add_typer(ledger_app, name="ledger")
app.add_typer(assets_app, name="assets")

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file with command defaults."),
]
DatabaseOption = Annotated[
    Path | None,
    typer.Option("--database", help="SQLite database path (overrides config value)."),
]
SilenceOption = Annotated[
    float | None,
    typer.Option("--silence", min=0.0, help="Seconds of silence between segments."),
]


class AssemblyProgressIndicator:
    """Render one progress line per assembly state transition."""

    def __init__(self, command_name: str) -> None:
        self._command_name = command_name

    def on_stage_start(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        typer.echo(
            f"[progress] command={self._command_name} "
            f"{stage_index}/{stage_total} stage={stage_name}"
        )


def _load_config(config_file: Path | None, **overrides: object) -> MarkcastConfig:
    """Load config (env + optional YAML) and map failures to stage errors."""

    try:
        config = ConfigLoader.load(config_file)
        return config.with_overrides(**overrides)
    except FileNotFoundError as exc:
        raise AssemblyError(
            stage="config",
            detail=f"Config file not found: `{config_file}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise AssemblyError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix config file, environment, or option values and rerun.",
        ) from exc


@contextmanager
def _opened(
    config_file: Path | None,
    database_path: Path | None,
    **overrides: object,
) -> Iterator[tuple[MarkcastConfig, Database]]:
    """Yield the resolved config and a database handle with the schema ensured."""

    config = _load_config(config_file, database_path=database_path, **overrides)
    database = Database.from_path(config.database_path)
    try:
        database.create_schema()
        yield config, database
    finally:
        database.dispose()


def _orchestrator(
    config: MarkcastConfig,
    database: Database,
    command_name: str,
) -> AssemblyOrchestrator:
    return AssemblyOrchestrator.from_config(
        config,
        database,
        run_logger=RunLogger(),
        stage_progress_callback=AssemblyProgressIndicator(command_name).on_stage_start,
    )


@app.command("init-db")
def init_db_command(
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Create database tables if they do not exist."""

    try:
        with _opened(config_file, database_path) as (config, _):
            typer.echo(f"Database ready: {config.database_path}")
    except Exception as exc:
        exit_with_command_error("init-db", exc)


@app.command("merge-ids")
def merge_ids_command(
    segment_ids: Annotated[str, typer.Argument(help="Comma-separated segment ids, e.g. `5,7,9`.")],
    name: Annotated[str, typer.Option("--name", help="Merged audio file name.")],
    silence: SilenceOption = None,
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Merge an explicit, ordered list of segments."""

    try:
        try:
            ids = parse_id_list(segment_ids)
        except ValueError as exc:
            raise AssemblyError(stage="resolve", detail=str(exc)) from exc
        with _opened(config_file, database_path, silence_seconds=silence) as (config, database):
            outcome = _orchestrator(config, database, "merge-ids").merge_by_ids(ids, name)
        echo_outcome(outcome)
    except Exception as exc:
        exit_with_command_error("merge-ids", exc)


@app.command("merge-playlist")
def merge_playlist_command(
    playlist_id: Annotated[int, typer.Argument(help="Playlist id.")],
    name: Annotated[
        str | None,
        typer.Option("--name", help="Merged audio file name (defaults to the playlist name)."),
    ] = None,
    silence: SilenceOption = None,
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Merge a playlist's segments in position order."""

    try:
        with _opened(config_file, database_path, silence_seconds=silence) as (config, database):
            outcome = _orchestrator(config, database, "merge-playlist").merge_playlist(
                playlist_id, name
            )
        echo_outcome(outcome)
    except Exception as exc:
        exit_with_command_error("merge-playlist", exc)


@app.command("merge-unprocessed")
def merge_unprocessed_command(
    name: Annotated[str | None, typer.Option("--name", help="Merged audio file name.")] = None,
    intro_outro: Annotated[
        bool,
        typer.Option("--intro-outro/--no-intro-outro", help="Wrap with the fixed intro/outro."),
    ] = False,
    silence: SilenceOption = None,
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Merge every segment not yet recorded in the ledger."""

    try:
        with _opened(config_file, database_path, silence_seconds=silence) as (config, database):
            outcome = _orchestrator(config, database, "merge-unprocessed").merge_unprocessed(
                name, with_intro_outro=intro_outro
            )
        echo_outcome(outcome)
    except Exception as exc:
        exit_with_command_error("merge-unprocessed", exc)


@app.command("unprocessed")
def unprocessed_command(
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """List segments that no merged audio file contains yet."""

    try:
        with _opened(config_file, database_path) as (_, database):
            segments = UnprocessedSegmentResolver(database).find_unprocessed()
        echo_segments(segments)
    except Exception as exc:
        exit_with_command_error("unprocessed", exc)


@playlist_app.command("create")
def playlist_create_command(
    name: Annotated[str, typer.Argument(help="Unique playlist name.")],
    description: Annotated[str, typer.Option("--description", help="Optional description.")] = "",
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Create a playlist."""

    try:
        with _opened(config_file, database_path) as (_, database):
            playlist = PlaylistStore(database).create(name, description)
        typer.echo(f"Created playlist {playlist.id}: {playlist.name}")
    except Exception as exc:
        exit_with_command_error("playlist create", exc)


@playlist_app.command("list")
def playlist_list_command(
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """List playlists by name."""

    try:
        with _opened(config_file, database_path) as (_, database):
            playlists = PlaylistStore(database).list_all()
        echo_playlists(playlists)
    except Exception as exc:
        exit_with_command_error("playlist list", exc)


@playlist_app.command("show")
def playlist_show_command(
    playlist_id: Annotated[int, typer.Argument(help="Playlist id.")],
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Show a playlist's items in position order."""

    try:
        with _opened(config_file, database_path) as (_, database):
            store = PlaylistStore(database)
            playlist = store.get(playlist_id)
            if playlist is None:
                raise NotFoundError(stage="playlist", entity="Playlist", identifier=playlist_id)
            items = store.list_items(playlist_id)
        echo_playlist_items(playlist, items)
    except Exception as exc:
        exit_with_command_error("playlist show", exc)


@playlist_app.command("rename")
def playlist_rename_command(
    playlist_id: Annotated[int, typer.Argument(help="Playlist id.")],
    new_name: Annotated[str, typer.Argument(help="New unique name.")],
    description: Annotated[
        str | None, typer.Option("--description", help="Replace the description.")
    ] = None,
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Rename a playlist."""

    try:
        with _opened(config_file, database_path) as (_, database):
            playlist = PlaylistStore(database).update(
                playlist_id, name=new_name, description=description
            )
        typer.echo(f"Renamed playlist {playlist.id}: {playlist.name}")
    except Exception as exc:
        exit_with_command_error("playlist rename", exc)


@playlist_app.command("delete")
def playlist_delete_command(
    playlist_id: Annotated[int, typer.Argument(help="Playlist id.")],
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Delete a playlist and all of its items."""

    try:
        with _opened(config_file, database_path) as (_, database):
            PlaylistStore(database).delete_playlist(playlist_id)
        typer.echo(f"Deleted playlist {playlist_id}")
    except Exception as exc:
        exit_with_command_error("playlist delete", exc)


@playlist_app.command("add")
def playlist_add_command(
    playlist_id: Annotated[int, typer.Argument(help="Playlist id.")],
    segment_id: Annotated[int, typer.Argument(help="Segment id to append.")],
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Append a segment to the end of a playlist."""

    try:
        with _opened(config_file, database_path) as (_, database):
            item = PlaylistStore(database).add_item(playlist_id, segment_id)
        typer.echo(f"Playlist {playlist_id}: segment {segment_id} at position {item.position}")
    except Exception as exc:
        exit_with_command_error("playlist add", exc)


@playlist_app.command("remove")
def playlist_remove_command(
    item_id: Annotated[int, typer.Argument(help="Playlist item id.")],
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Remove a playlist item and renumber the items after it."""

    try:
        with _opened(config_file, database_path) as (_, database):
            PlaylistStore(database).remove_item(item_id)
        typer.echo(f"Removed playlist item {item_id}")
    except Exception as exc:
        exit_with_command_error("playlist remove", exc)


@playlist_app.command("move")
def playlist_move_command(
    item_id: Annotated[int, typer.Argument(help="Playlist item id.")],
    position: Annotated[int, typer.Argument(help="New 1-based position (clamped).")],
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Move a playlist item to a new position."""

    try:
        with _opened(config_file, database_path) as (_, database):
            item = PlaylistStore(database).move_item(item_id, position)
        typer.echo(f"Moved playlist item {item.id} to position {item.position}")
    except Exception as exc:
        exit_with_command_error("playlist move", exc)


@ledger_app.command("list")
def ledger_list_command(
    name: Annotated[
        str | None, typer.Option("--name", help="Only entries whose name contains this text.")
    ] = None,
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """List merged audio files, newest first."""

    try:
        with _opened(config_file, database_path) as (_, database):
            ledger = AssemblyLedger(database)
            entries = ledger.find_by_name(name) if name else ledger.list_all()
        echo_merged_rows(entries)
    except Exception as exc:
        exit_with_command_error("ledger list", exc)


@ledger_app.command("show")
def ledger_show_command(
    merged_id: Annotated[int, typer.Argument(help="Merged audio file id.")],
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Show one merged audio file."""

    try:
        with _opened(config_file, database_path) as (_, database):
            merged = AssemblyLedger(database).get(merged_id)
        if merged is None:
            raise NotFoundError(stage="ledger", entity="Merged audio file", identifier=merged_id)
        echo_merged(merged)
    except Exception as exc:
        exit_with_command_error("ledger show", exc)


@ledger_app.command("timeline")
def ledger_timeline_command(
    merged_id: Annotated[int, typer.Argument(help="Merged audio file id.")],
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Print start timestamps of each segment inside a merged file."""

    try:
        with _opened(config_file, database_path) as (config, database):
            merged = AssemblyLedger(database).get(merged_id)
            if merged is None:
                raise NotFoundError(
                    stage="ledger", entity="Merged audio file", identifier=merged_id
                )
            segments = SegmentStore(database).get_many(merged.source_segment_ids)
            intro_seconds = (
                probe_duration_seconds(config.intro_path, config.ffprobe_binary)
                if merged.with_intro_outro
                else None
            )
        echo_timeline(build_timeline(merged, segments, intro_seconds=intro_seconds))
    except Exception as exc:
        exit_with_command_error("ledger timeline", exc)


@ledger_app.command("orphans")
def ledger_orphans_command(
    delete: Annotated[
        bool, typer.Option("--delete", help="Delete the unreferenced files.")
    ] = False,
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """List (or delete) output files that no merged audio file references."""

    try:
        with _opened(config_file, database_path) as (config, database):
            orphans = AssemblyLedger(database).find_orphans(
                config.audio_output_dir,
                keep=(config.intro_path, config.outro_path),
            )
        if not orphans:
            typer.echo("No orphaned files.")
            return
        for path in orphans:
            if delete:
                path.unlink()
                typer.echo(f"Deleted {path}")
            else:
                typer.echo(str(path))
    except Exception as exc:
        exit_with_command_error("ledger orphans", exc)


@assets_app.command("generate")
def assets_generate_command(
    config_file: ConfigOption = None,
    database_path: DatabaseOption = None,
) -> None:
    """Synthesize the intro/outro clips that are not cached yet."""

    try:
        config = _load_config(config_file, database_path=database_path)
        assets = IntroOutroAssets(
            intro_path=config.intro_path,
            outro_path=config.outro_path,
            intro_text=config.intro_text,
            outro_text=config.outro_text,
        )
        client = OpenAISpeechClient(
            api_key=config.api_key,
            model=config.tts_model,
            voice=config.tts_voice,
        )
        written = assets.ensure(client)
        if not written:
            typer.echo("Intro/outro assets already present.")
        for path in written:
            typer.echo(f"Generated {path}")
    except Exception as exc:
        exit_with_command_error("assets generate", exc)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
