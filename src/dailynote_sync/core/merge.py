"""Whole-record last-write-wins merging of note collections."""

from collections.abc import Iterable

from dailynote_sync.models.note import Note, parse_timestamp


def resolve(a: Note, b: Note) -> Note:
    """Pick the more recently updated of two versions of one note.

    Timestamps are compared as instants. On an exact tie the first argument
    is kept; that choice is arbitrary and callers should not depend on it.
    """
    if a.id != b.id:
        msg = f"Cannot resolve different notes: {a.id!r} vs {b.id!r}"
        raise ValueError(msg)
    if parse_timestamp(b.updated_at) > parse_timestamp(a.updated_at):
        return b
    return a


def merge(primary: Iterable[Note], secondary: Iterable[Note]) -> list[Note]:
    """Reduce two collections into one with a single record per id.

    Ids present on one side only are carried over as-is; ids on both sides
    go through resolve(), with the primary record winning ties. The result
    order is not meaningful.
    """
    merged: dict[str, Note] = {note.id: note for note in primary}
    for candidate in secondary:
        existing = merged.get(candidate.id)
        merged[candidate.id] = candidate if existing is None else resolve(existing, candidate)
    return list(merged.values())
