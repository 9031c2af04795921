"""Error taxonomy for note synchronization."""


class DailyNoteError(Exception):
    """Base exception for dailynote-sync."""


class TransientIOError(DailyNoteError):
    """A network or filesystem call failed; retried on the next pass."""


class MalformedRecordError(DailyNoteError):
    """A stored file could not be decoded into a note."""

    def __init__(self, message: str, filename: str | None = None) -> None:
        super().__init__(message)
        self.filename = filename

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (file: {self.filename})" if self.filename else base


class ValidationError(DailyNoteError):
    """A note failed validation and must not be saved."""


class ContainerResolutionError(DailyNoteError):
    """The remote notes folder could not be found or created."""


class NoteNotFoundError(DailyNoteError):
    """No note with the requested id is stored locally."""
