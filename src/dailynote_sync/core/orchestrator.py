"""Sync orchestration between the local note store and the remote drive."""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger

from dailynote_sync.config import FOLDER_ID_KEY, LAST_SYNC_KEY, SYNC_INTERVAL
from dailynote_sync.core.merge import merge
from dailynote_sync.core.tombstones import TombstoneTracker
from dailynote_sync.errors import ContainerResolutionError, NoteNotFoundError
from dailynote_sync.models.note import (
    Note,
    format_timestamp,
    mark_synced,
    require_valid,
    sort_by_updated,
)
from dailynote_sync.protocols import (
    KeyValueStoreProtocol,
    LocalStoreProtocol,
    NotifierProtocol,
    RemoteStoreProtocol,
)


@dataclass(frozen=True)
class SyncReport:
    """Summary of one sync pass."""

    uploaded: int
    upload_failures: int
    downloaded: int
    suppressed_skipped: int
    deletions_confirmed: int
    protected: int
    written: int
    removed: int
    total: int


class LogNotifier:
    """Notifier that only logs. Used when no front end is attached."""

    def notify(self, level: str, title: str, message: str = "") -> None:
        text = f"{title}: {message}" if message else title
        if level == "error":
            logger.error(text)
        elif level == "warning":
            logger.warning(text)
        elif level == "success":
            logger.success(text)
        else:
            logger.info(text)


class SyncOrchestrator:
    """Keep the local notes and the remote drive consistent.

    A pass runs: refresh local, upload unsynced notes, download the remote
    set, drop suppressed ids, merge, protect fresh uploads the remote listing
    has not caught up with yet, persist. Only one pass runs at a time; a
    trigger arriving while one is in flight is dropped. Failures never
    escape a pass: they are logged, reported through the notifier, and the
    next trigger retries.
    """

    def __init__(
        self,
        local: LocalStoreProtocol,
        remote: RemoteStoreProtocol,
        metadata: KeyValueStoreProtocol,
        owner_key: str,
        *,
        notifier: NotifierProtocol | None = None,
    ) -> None:
        self._local = local
        self._remote = remote
        self._metadata = metadata
        self.owner_key = owner_key
        self._notifier: NotifierProtocol = notifier or LogNotifier()
        self.tombstones = TombstoneTracker(metadata)

        self._lock = asyncio.Lock()
        self._container_id: str | None = None
        self._notes: list[Note] = []

    @property
    def notes(self) -> list[Note]:
        """In-memory view, newest first."""
        return list(self._notes)

    @property
    def is_syncing(self) -> bool:
        return self._lock.locked()

    @property
    def last_sync_at(self) -> str | None:
        return self._metadata.get(LAST_SYNC_KEY)

    def _folder_key(self) -> str:
        return f"{FOLDER_ID_KEY}:{self.owner_key}"

    def _record_sync_time(self) -> None:
        self._metadata.set(LAST_SYNC_KEY, format_timestamp(datetime.now(UTC)))

    async def load(self) -> list[Note]:
        """Refresh the in-memory view from the local store."""
        self._notes = sort_by_updated(await self._local.list())
        return self.notes

    async def _resolve_container(self) -> str:
        if self._container_id is None:
            cached = self._metadata.get(self._folder_key())
            if cached:
                self._container_id = cached
            else:
                try:
                    container_id = await self._remote.ensure_container(self.owner_key)
                except Exception as e:
                    msg = f"Failed to find or create the notes folder: {e}"
                    raise ContainerResolutionError(msg) from e
                if not container_id or not isinstance(container_id, str):
                    msg = f"Invalid folder id received: {container_id!r}"
                    raise ContainerResolutionError(msg)
                logger.info("Remote notes folder ready: {}", container_id)
                self._metadata.set(self._folder_key(), container_id)
                self._container_id = container_id
        return self._container_id

    async def sync(self, trigger: str = "manual") -> SyncReport | None:
        """Run one pass. Returns None if skipped or failed."""
        if self._lock.locked():
            logger.debug("Sync already running, dropping {} trigger", trigger)
            return None

        async with self._lock:
            logger.info("Syncing ({})", trigger)
            try:
                report = await self._sync_pass()
            except ContainerResolutionError as e:
                logger.warning("Sync aborted: {}", e)
                self._notifier.notify("error", "Sync failed", str(e))
                return None
            except Exception as e:
                logger.exception("Sync failed")
                self._notifier.notify("error", "Sync failed", str(e))
                return None

        logger.info(
            "Sync complete: {} uploaded ({} failed), {} downloaded, {} written, {} removed",
            report.uploaded, report.upload_failures, report.downloaded,
            report.written, report.removed,
        )
        self._notifier.notify("success", "Synced successfully", f"{report.total} notes")
        return report

    async def _sync_pass(self) -> SyncReport:
        container_id = await self._resolve_container()

        # Files may have changed behind our back since the view was loaded.
        local_notes = await self._local.list()
        self._notes = sort_by_updated(local_notes)

        just_uploaded, failures = await self._upload_pending(local_notes, container_id)

        remote_notes = await self._remote.list_and_download_all(container_id)
        remote_ids = {n.id for n in remote_notes}
        filtered_remote = [n for n in remote_notes if n.id not in self.tombstones]
        stale_remote = [n for n in remote_notes if n.id in self.tombstones]
        if stale_remote:
            logger.debug("Ignoring {} suppressed remote notes", len(stale_remote))

        confirmed = await self._retry_deletions(stale_remote)

        local_after = await self._local.list()
        confirmed += self._forget_absent(remote_ids | {n.id for n in local_after})
        local_unsynced = [
            n for n in local_after if not n.is_synced and n.id not in self.tombstones
        ]
        # Remote first, so remote wins ties.
        merged = {n.id: n for n in merge(filtered_remote, local_unsynced)}

        protected = 0
        for note in local_after:
            if (
                note.id in just_uploaded
                and note.id not in remote_ids
                and note.id not in self.tombstones
                and note.id not in merged
            ):
                logger.debug("{} not listed remotely yet, keeping local copy", note.id)
                merged[note.id] = note
                protected += 1

        written, removed = await self._persist(local_after, merged)
        self._notes = sort_by_updated(list(merged.values()))
        self._record_sync_time()

        return SyncReport(
            uploaded=len(just_uploaded),
            upload_failures=failures,
            downloaded=len(remote_notes),
            suppressed_skipped=len(stale_remote),
            deletions_confirmed=confirmed,
            protected=protected,
            written=written,
            removed=removed,
            total=len(merged),
        )

    async def _upload_pending(self, local_notes: list[Note], container_id: str) -> tuple[set[str], int]:
        pending = [n for n in local_notes if not n.is_synced and n.id not in self.tombstones]
        just_uploaded: set[str] = set()
        failures = 0

        if not pending:
            return just_uploaded, failures

        logger.info("Found {} unsynced notes, uploading", len(pending))
        self._notifier.notify("info", "Syncing offline notes...", f"{len(pending)} notes pending")

        # One note at a time.
        for note in pending:
            try:
                remote_file_id = await self._remote.upload(note, container_id)
                await self._local.write(mark_synced(note, remote_file_id))
            except Exception as e:
                failures += 1
                logger.warning("Failed to upload {}: {}", note.id, e)
                continue
            just_uploaded.add(note.id)
            logger.debug("Uploaded {}", note.id)

        if failures:
            self._notifier.notify(
                "warning", "Some notes were not uploaded", f"{failures} will retry on next sync"
            )
        return just_uploaded, failures

    def _forget_absent(self, present_ids: set[str]) -> int:
        """Clear suppressions for ids neither store holds any more."""
        gone = sorted(self.tombstones.ids - present_ids)
        for note_id in gone:
            self.tombstones.clear(note_id)
            logger.debug("{} is gone everywhere, suppression cleared", note_id)
        return len(gone)

    async def _retry_deletions(self, stale_remote: list[Note]) -> int:
        """Delete remote copies of notes already deleted here."""
        confirmed = 0
        for note in stale_remote:
            if not note.remote_file_id:
                continue
            try:
                await self._remote.delete(note.remote_file_id)
            except Exception as e:
                logger.warning("Remote delete of {} still failing: {}", note.id, e)
                continue
            self.tombstones.clear(note.id)
            confirmed += 1
            logger.info("Removed {} from remote", note.id)
        return confirmed

    async def _persist(self, previous_notes: list[Note], merged: dict[str, Note]) -> tuple[int, int]:
        previous = {n.id: n for n in previous_notes}
        written = 0
        removed = 0
        failures = 0

        for note in merged.values():
            if previous.get(note.id) == note:
                continue
            try:
                await self._local.write(note)
            except Exception as e:
                failures += 1
                logger.warning("Failed to store {} locally: {}", note.id, e)
                continue
            written += 1

        for note_id in sorted(previous.keys() - merged.keys()):
            try:
                await self._local.delete(note_id)
            except Exception as e:
                failures += 1
                logger.warning("Failed to remove {} locally: {}", note_id, e)
                continue
            removed += 1

        if failures:
            self._notifier.notify(
                "warning", "Some local changes were not saved", f"{failures} will retry on next sync"
            )
        return written, removed

    async def delete(self, note_id: str) -> bool:
        """Delete a note everywhere.

        The id is suppressed before either store is changed, so neither a
        crash nor a failed remote call can let a later pass restore it.

        Returns:
            True if the remote copy is confirmed gone and the suppression
            cleared, False if the suppression stays for a later pass.

        Raises:
            NoteNotFoundError: if no such note is stored locally. Nothing is
                suppressed in that case.
        """
        note = next((n for n in self._notes if n.id == note_id), None)
        if note is None:
            try:
                note = await self._local.read(note_id)
            except Exception as e:
                logger.warning("Cannot read {} for deletion: {}", note_id, e)
                self._notifier.notify("error", "Delete failed", str(e))
                return False
        if note is None:
            msg = f"Note {note_id!r} not found"
            raise NoteNotFoundError(msg)

        self.tombstones.suppress(note_id)
        try:
            await self._local.delete(note_id)
        except Exception as e:
            logger.warning("Local delete of {} failed: {}", note_id, e)
            self._notifier.notify("error", "Delete failed", str(e))
            return False
        finally:
            self._notes = [n for n in self._notes if n.id != note_id]

        if not note.remote_file_id:
            # Never uploaded from here; a later pass deletes any remote copy it finds.
            self._notifier.notify("success", "Note deleted", f'"{note.title}" has been deleted')
            return False

        try:
            await self._remote.delete(note.remote_file_id)
        except Exception as e:
            logger.warning("Remote delete of {} failed, will retry: {}", note_id, e)
            self._notifier.notify("warning", "Deleted locally", "Will sync deletion when online")
            return False

        self.tombstones.clear(note_id)
        self._record_sync_time()
        self._notifier.notify("success", "Note deleted", "Removed from remote drive")
        return True

    async def save(self, note: Note) -> Note:
        """Validate, store locally, and update the in-memory view.

        Raises:
            ValidationError: before any I/O if the note is not valid.
        """
        require_valid(note)
        await self._local.write(note)
        self._notes = sort_by_updated([n for n in self._notes if n.id != note.id] + [note])
        return note

    async def run_periodic(
        self, interval: float = SYNC_INTERVAL, stop: asyncio.Event | None = None
    ) -> None:
        """Sync now and then every `interval` seconds until `stop` is set."""
        stop = stop or asyncio.Event()
        trigger = "start"
        while not stop.is_set():
            await self.sync(trigger)
            trigger = "timer"
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except TimeoutError:
                pass
