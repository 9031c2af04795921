"""Protocols for the stores the sync engine is wired to."""

from typing import Protocol, runtime_checkable

from dailynote_sync.models.note import Note


@runtime_checkable
class RemoteStoreProtocol(Protocol):
    """Protocol for the cloud drive holding the shared copy of every note."""

    async def ensure_container(self, owner_key: str) -> str:
        """Find or create the owner's notes folder and return its id."""
        ...

    async def upload(self, note: Note, container_id: str) -> str:
        """Create or overwrite `<id>.txt` and return the remote file id."""
        ...

    async def list_and_download_all(self, container_id: str) -> list[Note]:
        """Return every note in the folder that decodes; skip the rest."""
        ...

    async def delete(self, remote_file_id: str) -> None:
        """Delete a file. A file that is already gone counts as deleted."""
        ...


@runtime_checkable
class LocalStoreProtocol(Protocol):
    """Protocol for on-device note storage."""

    async def list(self) -> list[Note]:
        """Return all notes."""
        ...

    async def read(self, note_id: str) -> Note | None:
        """Return one note, or None if not stored."""
        ...

    async def write(self, note: Note) -> None:
        """Store a note, overwriting any previous version with the same id."""
        ...

    async def delete(self, note_id: str) -> None:
        """Remove a note. No-op if absent."""
        ...


@runtime_checkable
class KeyValueStoreProtocol(Protocol):
    """Protocol for the small durable settings store."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if never set."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value durably before returning."""
        ...


@runtime_checkable
class NotifierProtocol(Protocol):
    """Protocol for user-facing, non-blocking notices."""

    def notify(self, level: str, title: str, message: str = "") -> None:
        """Show a notice. Level is one of info, success, warning, error."""
        ...
