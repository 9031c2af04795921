"""Local journal notes kept in sync with a remote drive."""

from dailynote_sync.core.codec import decode, encode
from dailynote_sync.core.merge import merge, resolve
from dailynote_sync.core.orchestrator import SyncOrchestrator, SyncReport
from dailynote_sync.core.tombstones import TombstoneTracker
from dailynote_sync.models.note import Note
from dailynote_sync.protocols import (
    KeyValueStoreProtocol,
    LocalStoreProtocol,
    NotifierProtocol,
    RemoteStoreProtocol,
)

__all__ = [
    "KeyValueStoreProtocol",
    "LocalStoreProtocol",
    "Note",
    "NotifierProtocol",
    "RemoteStoreProtocol",
    "SyncOrchestrator",
    "SyncReport",
    "TombstoneTracker",
    "decode",
    "encode",
    "merge",
    "resolve",
]
