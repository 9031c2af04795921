"""Filesystem note store: one `<id>.txt` file per note."""

import hashlib
import sqlite3
import time
from dataclasses import replace
from pathlib import Path

from loguru import logger

from dailynote_sync.core.codec import decode, encode
from dailynote_sync.errors import TransientIOError
from dailynote_sync.models.note import NOTE_SUFFIX, Note, note_filename


def _text_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class FileNoteStore:
    """Keep notes as plain text files in a folder the user can browse.

    The text format has no room for sync bookkeeping, so `is_synced` and
    `remote_file_id` are kept in the `note_state` table next to the hash of
    the text this store last wrote. A file whose text no longer matches that
    hash was changed outside the app and is reported as unsynced; so is a
    file without any state row.

    Unchanged files are not rewritten, so mtimes only move on real edits.
    """

    def __init__(self, notes_dir: str | Path, conn: sqlite3.Connection) -> None:
        self.notes_dir = Path(notes_dir).expanduser().resolve()
        self._conn = conn
        self.notes_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Local store ready, notes_dir {!r}", str(self.notes_dir))

    def _path(self, note_id: str) -> Path:
        path = self.notes_dir / note_filename(note_id)
        if not note_id or path.parent != self.notes_dir:
            msg = f"Note id escapes notes dir: {note_id!r}"
            raise ValueError(msg)
        return path

    def _state(self, note_id: str) -> tuple[bool, str | None, str] | None:
        row = self._conn.execute(
            "SELECT is_synced, remote_file_id, content_hash FROM note_state WHERE note_id = ?",
            (note_id,),
        ).fetchone()
        if row is None:
            return None
        return bool(row[0]), row[1], row[2]

    def _load(self, path: Path) -> Note | None:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError:
            logger.warning("Skipping {}: not UTF-8 text", path.name)
            return None
        except OSError as e:
            raise TransientIOError(f"Cannot read {path.name}: {e}") from e

        note = decode(path.name, text)
        if note is None:
            logger.warning("Skipping {}: not a note file", path.name)
            return None

        state = self._state(note.id)
        if state is None:
            return replace(note, is_synced=False)
        is_synced, remote_file_id, content_hash = state
        if content_hash != _text_hash(text):
            logger.debug("{} changed outside the app", path.name)
            is_synced = False
        return replace(note, is_synced=is_synced, remote_file_id=remote_file_id)

    async def list(self) -> list[Note]:
        notes: list[Note] = []
        try:
            paths = sorted(self.notes_dir.glob("*" + NOTE_SUFFIX))
        except OSError as e:
            raise TransientIOError(f"Cannot list {self.notes_dir}: {e}") from e
        for path in paths:
            note = self._load(path)
            if note is not None:
                notes.append(note)
        logger.debug("Local store: {} notes", len(notes))
        return notes

    async def read(self, note_id: str) -> Note | None:
        return self._load(self._path(note_id))

    async def write(self, note: Note) -> None:
        path = self._path(note.id)
        contents = encode(note)

        try:
            same = path.read_text(encoding="utf-8") == contents
        except (FileNotFoundError, UnicodeDecodeError):
            same = False

        if not same:
            logger.debug("Writing {!r}", path.name)
            try:
                path.write_text(contents, encoding="utf-8")
            except OSError as e:
                raise TransientIOError(f"Cannot write {path.name}: {e}") from e

        self._conn.execute(
            """INSERT OR REPLACE INTO note_state
               (note_id, is_synced, remote_file_id, content_hash, written_at)
               VALUES (?, ?, ?, ?, ?)""",
            (note.id, int(note.is_synced), note.remote_file_id, _text_hash(contents),
             int(time.time() * 1000)),
        )
        self._conn.commit()

    async def delete(self, note_id: str) -> None:
        path = self._path(note_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise TransientIOError(f"Cannot delete {path.name}: {e}") from e
        self._conn.execute("DELETE FROM note_state WHERE note_id = ?", (note_id,))
        self._conn.commit()
        logger.debug("Removed {!r}", path.name)
