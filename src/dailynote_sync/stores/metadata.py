"""SQLite-backed key/value store for sync bookkeeping."""

import sqlite3

from dailynote_sync.core.database.schema import get_metadata, set_metadata


class MetadataStore:
    """Durable string settings (suppressed ids, last sync time, folder id)."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, key: str) -> str | None:
        return get_metadata(self._conn, key)

    def set(self, key: str, value: str) -> None:
        set_metadata(self._conn, key, value)
