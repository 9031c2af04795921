"""Convert notes to and from their on-disk text form.

The format is the same locally and on the remote drive:

    # Title: <title>
    # Created: <created ISO-8601>
    # Updated: <updated ISO-8601>

    <content, raw, to end of file>
"""

from pathlib import PurePath

from loguru import logger

from dailynote_sync.models.note import Note, parse_timestamp

TITLE_PREFIX = "# Title:"
CREATED_PREFIX = "# Created:"
UPDATED_PREFIX = "# Updated:"

# Headers are only looked for this far into a file.
MAX_HEADER_LINES = 10

_FIELDS = {
    TITLE_PREFIX: "title",
    CREATED_PREFIX: "created_at",
    UPDATED_PREFIX: "updated_at",
}


def encode(note: Note) -> str:
    """Render a note as text. Content is written verbatim, without escaping."""
    return (
        f"{TITLE_PREFIX} {note.title}\n"
        f"{CREATED_PREFIX} {note.created_at}\n"
        f"{UPDATED_PREFIX} {note.updated_at}\n"
        "\n"
        f"{note.content}"
    )


def note_id_from_filename(filename: str) -> str:
    """'notes/2026-01-27_05-41-12.txt' -> '2026-01-27_05-41-12'."""
    return PurePath(filename).stem


def _header_value(line: str, prefix: str) -> str:
    value = line[len(prefix) :]
    return value[1:] if value.startswith(" ") else value


def decode(filename: str, text: str) -> Note | None:
    """Parse a stored file back into a note.

    Returns None for anything that is not a complete note file: missing or
    empty headers, timestamps that are not ISO-8601, or stray text before
    the blank separator line. Never raises.
    """
    lines = text.split("\n")
    fields: dict[str, str] = {}
    content_start: int | None = None

    for lnum, raw_line in enumerate(lines[:MAX_HEADER_LINES]):
        line = raw_line.rstrip("\r")
        if line == "":
            content_start = lnum + 1
            break
        for prefix, field in _FIELDS.items():
            if line.startswith(prefix):
                fields.setdefault(field, _header_value(line, prefix))
                break
        else:
            if not line.startswith("# ") or ":" not in line:
                logger.debug("{}: unexpected line {} in header block", filename, lnum + 1)
                return None
    else:
        # Header block without a separator: only acceptable at end of file.
        if len(lines) > MAX_HEADER_LINES:
            logger.debug("{}: no blank line after header block", filename)
            return None
        content_start = len(lines)

    missing = sorted(set(_FIELDS.values()) - {k for k, v in fields.items() if v.strip()})
    if missing:
        logger.debug("{}: missing headers {}", filename, missing)
        return None

    try:
        parse_timestamp(fields["created_at"])
        parse_timestamp(fields["updated_at"])
    except ValueError:
        logger.debug("{}: bad timestamp in headers", filename)
        return None

    return Note(
        id=note_id_from_filename(filename),
        title=fields["title"],
        content="\n".join(lines[content_start:]),
        created_at=fields["created_at"].strip(),
        updated_at=fields["updated_at"].strip(),
        is_synced=True,
    )
