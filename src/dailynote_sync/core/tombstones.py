"""Durable set of locally deleted notes awaiting remote deletion."""

import json

from loguru import logger

from dailynote_sync.config import SUPPRESSED_IDS_KEY
from dailynote_sync.protocols import KeyValueStoreProtocol


class TombstoneTracker:
    """Remember which note ids were deleted here but may still exist remotely.

    While an id is tracked, sync passes must not restore it from the remote
    copy. The set is loaded once on construction and written back on every
    change, before the mutating call returns, so a crash between a local
    delete and the remote delete cannot bring the note back.
    """

    def __init__(self, store: KeyValueStoreProtocol, key: str = SUPPRESSED_IDS_KEY) -> None:
        self._store = store
        self._key = key
        self._ids: set[str] = self._load()

    def _load(self) -> set[str]:
        raw = self._store.get(self._key)
        if raw is None:
            return set()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Corrupt suppression list under {!r}, starting empty", self._key)
            return set()
        if not isinstance(data, list):
            logger.warning("Suppression list under {!r} is not a list, starting empty", self._key)
            return set()
        return {str(x) for x in data}

    def _save(self) -> None:
        self._store.set(self._key, json.dumps(sorted(self._ids)))

    def suppress(self, note_id: str) -> None:
        if note_id in self._ids:
            return
        self._ids.add(note_id)
        self._save()
        logger.debug("Suppressed {}", note_id)

    def is_suppressed(self, note_id: str) -> bool:
        return note_id in self._ids

    def clear(self, note_id: str) -> None:
        """Forget an id once the remote copy is confirmed gone."""
        if note_id not in self._ids:
            return
        self._ids.discard(note_id)
        self._save()
        logger.debug("Cleared suppression for {}", note_id)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self._ids)

    def __contains__(self, note_id: object) -> bool:
        return note_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)
