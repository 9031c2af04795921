"""Note record model and its pure transformations."""

import re
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta

from dailynote_sync.errors import ValidationError

NOTE_SUFFIX = ".txt"


@dataclass(frozen=True)
class Note:
    """A single journal entry.

    `id` doubles as the file stem on both stores and never changes.
    Timestamps are ISO-8601 strings, kept verbatim so files round-trip.
    """

    id: str
    title: str
    content: str
    created_at: str
    updated_at: str
    is_synced: bool = False
    remote_file_id: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validate()."""

    valid: bool
    error: str | None = None


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Raises:
        ValueError: if the value is not ISO-8601.
    """
    dt = datetime.fromisoformat(value.strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def format_timestamp(dt: datetime) -> str:
    """Format as UTC with millisecond precision and a trailing Z."""
    iso = dt.astimezone(UTC).isoformat(timespec="milliseconds")
    return iso.replace("+00:00", "Z")


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now().astimezone()


def _bumped(note: Note, now: datetime | None) -> str:
    # updated_at must strictly advance even if the clock did not
    candidate = _now(now)
    previous = parse_timestamp(note.updated_at)
    if candidate <= previous:
        candidate = previous + timedelta(milliseconds=1)
    return format_timestamp(candidate)


def make_id(now: datetime) -> str:
    """2026-01-27 05:41:12 local -> '2026-01-27_05-41-12'."""
    return now.astimezone().strftime("%Y-%m-%d_%H-%M-%S")


def make_title(now: datetime) -> str:
    """2026-01-27 05:41:12 local -> '2026-01-27 05:41'."""
    return now.astimezone().strftime("%Y-%m-%d %H:%M")


def note_filename(note_id: str) -> str:
    return note_id + NOTE_SUFFIX


def create_note(now: datetime | None = None) -> Note:
    """Create an empty, unsynced note stamped with the current local time."""
    moment = _now(now)
    stamp = format_timestamp(moment)
    return Note(
        id=make_id(moment),
        title=make_title(moment),
        content="",
        created_at=stamp,
        updated_at=stamp,
        is_synced=False,
    )


def with_content(note: Note, text: str, now: datetime | None = None) -> Note:
    """Return a copy with new content; the copy needs a re-sync."""
    return replace(note, content=text, updated_at=_bumped(note, now), is_synced=False)


def with_title(note: Note, text: str, now: datetime | None = None) -> Note:
    """Return a copy with a new title; the copy needs a re-sync."""
    return replace(note, title=text, updated_at=_bumped(note, now), is_synced=False)


def mark_synced(note: Note, remote_file_id: str | None = None) -> Note:
    """Return a synced copy, keeping the known remote handle unless a new one is given."""
    return replace(
        note,
        is_synced=True,
        remote_file_id=remote_file_id or note.remote_file_id,
    )


def validate(note: Note) -> ValidationResult:
    """Check that content and title are not blank. Never corrects anything."""
    if not note.content.strip():
        return ValidationResult(valid=False, error="Note content cannot be empty")
    if not note.title.strip():
        return ValidationResult(valid=False, error="Note title cannot be empty")
    return ValidationResult(valid=True)


def require_valid(note: Note) -> None:
    """Raise ValidationError if validate() rejects the note."""
    result = validate(note)
    if not result.valid:
        raise ValidationError(result.error)


def sort_by_updated(notes: list[Note]) -> list[Note]:
    """Newest first, the display order."""
    return sorted(notes, key=lambda n: parse_timestamp(n.updated_at), reverse=True)


def pending_count(notes: list[Note]) -> int:
    return sum(1 for n in notes if not n.is_synced)


_MARKDOWN_CHARS = re.compile(r"[*_~`#]")
_NEWLINES = re.compile(r"\n+")


def preview(note: Note, limit: int = 150) -> str:
    """Plain-text preview: markdown markers dropped, newlines folded."""
    if not note.content:
        return ""
    plain = _NEWLINES.sub(" ", _MARKDOWN_CHARS.sub("", note.content)).strip()
    return plain[:limit] + "..." if len(plain) > limit else plain
