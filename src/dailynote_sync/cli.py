"""CLI for dailynote-sync (write, browse, sync)."""

import asyncio
import os
import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from dailynote_sync.config import (
    LAST_SYNC_KEY,
    STATE_DB_NAME,
    SYNC_INTERVAL,
    resolve_data_directory,
    resolve_notes_directory,
)
from dailynote_sync.core.database.schema import open_state_db
from dailynote_sync.core.orchestrator import SyncOrchestrator
from dailynote_sync.core.tombstones import TombstoneTracker
from dailynote_sync.errors import NoteNotFoundError, ValidationError
from dailynote_sync.logging_config import configure_logging
from dailynote_sync.models.note import (
    Note,
    create_note,
    pending_count,
    preview,
    require_valid,
    sort_by_updated,
    with_content,
    with_title,
)
from dailynote_sync.stores.drive import DriveRemoteStore
from dailynote_sync.stores.local import FileNoteStore
from dailynote_sync.stores.metadata import MetadataStore

app = typer.Typer(help="Daily notes: a local journal kept in sync with Google Drive.")

NotesDirOption = Annotated[
    Path | None,
    typer.Option("--notes-dir", "-n", help="Folder holding the .txt notes"),
]
DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory for the sync state database"),
]
OwnerOption = Annotated[
    str | None,
    typer.Option("--owner", "-o", help="Account key for the remote folder (default $DAILYNOTE_OWNER)"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_file: Annotated[
        Path | None,
        typer.Option("--log-file", help="Also write debug logs to this file"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose, log_file=log_file)


def _open_state(data_dir: Path | None) -> sqlite3.Connection:
    dst = data_dir or resolve_data_directory()
    dst.mkdir(parents=True, exist_ok=True)
    return open_state_db(str(dst / STATE_DB_NAME))


def _local_store(notes_dir: Path | None, conn: sqlite3.Connection) -> FileNoteStore:
    return FileNoteStore(notes_dir or resolve_notes_directory(), conn)


def _orchestrator(
    notes_dir: Path | None, owner: str | None, conn: sqlite3.Connection
) -> SyncOrchestrator:
    owner_key = owner or os.environ.get("DAILYNOTE_OWNER")
    if not owner_key:
        logger.error("No owner given. Pass --owner or set DAILYNOTE_OWNER.")
        raise typer.Exit(1)
    try:
        remote = DriveRemoteStore()
    except RuntimeError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    return SyncOrchestrator(_local_store(notes_dir, conn), remote, MetadataStore(conn), owner_key)


def _find(store: FileNoteStore, note_id: str) -> Note:
    note = asyncio.run(store.read(note_id))
    if note is None:
        typer.echo(f"Note '{note_id}' not found.")
        raise typer.Exit(1)
    return note


def _save_local(store: FileNoteStore, note: Note) -> None:
    try:
        require_valid(note)
    except ValidationError as e:
        typer.echo(f"Not saved: {e}")
        raise typer.Exit(1) from e
    asyncio.run(store.write(note))


@app.command(name="list")
def list_cmd(notes_dir: NotesDirOption = None, data_dir: DataDirOption = None) -> None:
    """List notes, newest first."""
    conn = _open_state(data_dir)
    try:
        notes = sort_by_updated(asyncio.run(_local_store(notes_dir, conn).list()))
        typer.echo(f"{len(notes)} notes ({pending_count(notes)} not synced):\n")
        for note in notes:
            badge = "synced" if note.is_synced else "local"
            typer.echo(f"  {note.title}  [{badge}]  id={note.id}")
            text = preview(note, limit=80)
            if text:
                typer.echo(f"    {text}")
    finally:
        conn.close()


@app.command()
def new(
    title: Annotated[str | None, typer.Option("--title", "-t", help="Title (default: timestamp)")] = None,
    content: Annotated[
        str | None, typer.Option("--content", "-c", help="Note text (default: read stdin)")
    ] = None,
    notes_dir: NotesDirOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Write a new note."""
    if content is None:
        content = typer.get_text_stream("stdin").read()

    note = with_content(create_note(), content)
    if title is not None:
        note = with_title(note, title)

    conn = _open_state(data_dir)
    try:
        _save_local(_local_store(notes_dir, conn), note)
    finally:
        conn.close()
    typer.echo(note.id)


@app.command()
def show(
    note_id: str = typer.Argument(..., help="Note id"),
    notes_dir: NotesDirOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Print one note."""
    conn = _open_state(data_dir)
    try:
        note = _find(_local_store(notes_dir, conn), note_id)
    finally:
        conn.close()
    typer.echo(note.title)
    typer.echo(f"  created {note.created_at}  updated {note.updated_at}")
    typer.echo(f"  {'synced' if note.is_synced else 'not synced'}")
    typer.echo()
    typer.echo(note.content)


@app.command()
def edit(
    note_id: str = typer.Argument(..., help="Note id"),
    title: Annotated[str | None, typer.Option("--title", "-t", help="New title")] = None,
    content: Annotated[str | None, typer.Option("--content", "-c", help="New text")] = None,
    notes_dir: NotesDirOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Change a note's title or text."""
    if title is None and content is None:
        typer.echo("Nothing to change: pass --title and/or --content.")
        raise typer.Exit(1)

    conn = _open_state(data_dir)
    try:
        store = _local_store(notes_dir, conn)
        note = _find(store, note_id)
        if content is not None:
            note = with_content(note, content)
        if title is not None:
            note = with_title(note, title)
        _save_local(store, note)
    finally:
        conn.close()
    typer.echo(f"Updated {note.id}")


@app.command()
def delete(
    note_id: str = typer.Argument(..., help="Note id"),
    notes_dir: NotesDirOption = None,
    data_dir: DataDirOption = None,
    owner: OwnerOption = None,
) -> None:
    """Delete a note locally and from the remote drive."""
    conn = _open_state(data_dir)
    try:
        orchestrator = _orchestrator(notes_dir, owner, conn)

        async def _run() -> bool:
            await orchestrator.load()
            return await orchestrator.delete(note_id)

        confirmed = asyncio.run(_run())
    except NoteNotFoundError as e:
        typer.echo(f"Note '{note_id}' not found.")
        raise typer.Exit(1) from e
    finally:
        conn.close()
    typer.echo("Deleted." if confirmed else "Deleted locally; the remote copy goes on a later sync.")


@app.command()
def sync(
    notes_dir: NotesDirOption = None,
    data_dir: DataDirOption = None,
    owner: OwnerOption = None,
) -> None:
    """Run one sync pass."""
    conn = _open_state(data_dir)
    try:
        report = asyncio.run(_orchestrator(notes_dir, owner, conn).sync("manual"))
    finally:
        conn.close()
    if report is None:
        raise typer.Exit(1)
    typer.echo(
        f"Synced {report.total} notes: {report.uploaded} uploaded, "
        f"{report.written} updated locally, {report.removed} removed"
    )


@app.command()
def watch(
    interval: int = typer.Option(SYNC_INTERVAL, "--interval", "-i", help="Seconds between passes"),
    notes_dir: NotesDirOption = None,
    data_dir: DataDirOption = None,
    owner: OwnerOption = None,
) -> None:
    """Sync now and then periodically until interrupted."""
    conn = _open_state(data_dir)
    try:
        orchestrator = _orchestrator(notes_dir, owner, conn)
        asyncio.run(orchestrator.run_periodic(interval))
    except KeyboardInterrupt:
        logger.info("Stopped")
    finally:
        conn.close()


@app.command()
def status(notes_dir: NotesDirOption = None, data_dir: DataDirOption = None) -> None:
    """Show pending uploads, pending deletions and the last sync time."""
    conn = _open_state(data_dir)
    try:
        metadata = MetadataStore(conn)
        notes = asyncio.run(_local_store(notes_dir, conn).list())
        tombstones = TombstoneTracker(metadata)
        last_sync = metadata.get(LAST_SYNC_KEY)
    finally:
        conn.close()
    typer.echo(f"Notes: {len(notes)}, not synced: {pending_count(notes)}")
    typer.echo(f"Deletions pending remotely: {len(tombstones)}")
    typer.echo(f"Last sync: {last_sync or 'never'}")
