"""Google Drive v3 note store."""

import asyncio
import json
from typing import Any

import requests
from loguru import logger

from dailynote_sync.config import DRIVE_ROOT_FOLDER, DRIVE_TOKEN_FILES
from dailynote_sync.core.codec import decode, encode
from dailynote_sync.errors import MalformedRecordError, TransientIOError
from dailynote_sync.models.note import NOTE_SUFFIX, Note, mark_synced, note_filename

DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
UPLOAD_API_BASE = "https://www.googleapis.com/upload/drive/v3"
FOLDER_MIME = "application/vnd.google-apps.folder"
NOTE_MIME = "text/plain"
_BOUNDARY = "-------314159265358979323846"


def read_drive_token() -> str:
    """Return the OAuth access token from the first token file found."""
    for token_path in DRIVE_TOKEN_FILES:
        try:
            return token_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            pass
    msg = f"Cannot find Drive token file, was looking at {DRIVE_TOKEN_FILES!r}"
    raise RuntimeError(msg)


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveRemoteStore:
    """Notes as `<id>.txt` files in `DailyNotes/<owner>` on Google Drive.

    The HTTP calls are blocking, so each public method runs its work in a
    thread. Transport failures and error statuses surface as
    TransientIOError; a missing file on delete is not an error.
    """

    def __init__(self, token: str | None = None, *, timeout: float = 30.0) -> None:
        self.token = token if token is not None else read_drive_token()
        self.timeout = timeout
        self.sess = requests.Session()
        self.sess.headers["Authorization"] = f"Bearer {self.token}"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        logger.debug("Drive {} {}", method, url)
        try:
            r = self.sess.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransientIOError(f"Drive {method} failed: {e}") from e
        if r.status_code >= 400:
            msg = f"Drive {method} {url} -> {r.status_code}: {r.text[:200]}"
            raise TransientIOError(msg)
        return r

    def _list_files(self, query: str, fields: str = "files(id,name)") -> list[dict[str, Any]]:
        files: list[dict[str, Any]] = []
        params: dict[str, str] = {"q": query, "fields": f"nextPageToken,{fields}"}
        while True:
            data = self._request("GET", f"{DRIVE_API_BASE}/files", params=params).json()
            files.extend(data.get("files", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                return files
            params["pageToken"] = page_token

    def find_or_create_folder(self, name: str, parent_id: str) -> str:
        query = (
            f"name='{_quote(name)}' and '{_quote(parent_id)}' in parents "
            f"and mimeType='{FOLDER_MIME}' and trashed=false"
        )
        found = self._list_files(query)
        if found:
            return str(found[0]["id"])

        r = self._request(
            "POST",
            f"{DRIVE_API_BASE}/files",
            json={"name": name, "mimeType": FOLDER_MIME, "parents": [parent_id]},
            params={"fields": "id"},
        )
        logger.info("Created Drive folder {!r}", name)
        return str(r.json()["id"])

    def find_file_by_name(self, filename: str, folder_id: str) -> str | None:
        query = f"name='{_quote(filename)}' and '{_quote(folder_id)}' in parents and trashed=false"
        found = self._list_files(query, fields="files(id)")
        return str(found[0]["id"]) if found else None

    def download_file_content(self, file_id: str) -> str:
        r = self._request("GET", f"{DRIVE_API_BASE}/files/{file_id}", params={"alt": "media"})
        r.encoding = "utf-8"
        return r.text

    def _ensure_container(self, owner_key: str) -> str:
        root_id = self.find_or_create_folder(DRIVE_ROOT_FOLDER, "root")
        return self.find_or_create_folder(owner_key, root_id)

    def _upload(self, note: Note, container_id: str) -> str:
        filename = note_filename(note.id)
        body = encode(note).encode("utf-8")

        existing = self.find_file_by_name(filename, container_id)
        if existing:
            self._request(
                "PATCH",
                f"{UPLOAD_API_BASE}/files/{existing}",
                params={"uploadType": "media"},
                data=body,
                headers={"Content-Type": NOTE_MIME},
            )
            logger.debug("Updated {} on Drive", filename)
            return existing

        metadata = {"name": filename, "parents": [container_id], "mimeType": NOTE_MIME}
        multipart = (
            f"--{_BOUNDARY}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{json.dumps(metadata)}\r\n"
            f"--{_BOUNDARY}\r\n"
            f"Content-Type: {NOTE_MIME}\r\n\r\n"
        ).encode("utf-8") + body + f"\r\n--{_BOUNDARY}--".encode("utf-8")
        r = self._request(
            "POST",
            f"{UPLOAD_API_BASE}/files",
            params={"uploadType": "multipart", "fields": "id"},
            data=multipart,
            headers={"Content-Type": f"multipart/related; boundary={_BOUNDARY}"},
        )
        logger.debug("Created {} on Drive", filename)
        return str(r.json()["id"])

    def _parse_file(self, name: str, text: str) -> Note:
        note = decode(name, text)
        if note is None:
            raise MalformedRecordError("not a note file", filename=name)
        return note

    def _list_and_download_all(self, container_id: str) -> list[Note]:
        query = f"'{_quote(container_id)}' in parents and mimeType='{NOTE_MIME}' and trashed=false"
        notes: list[Note] = []
        for file_obj in self._list_files(query):
            if not file_obj["name"].endswith(NOTE_SUFFIX):
                logger.debug("Skipping remote file {!r}: not a note", file_obj["name"])
                continue
            try:
                note = self._parse_file(file_obj["name"], self.download_file_content(file_obj["id"]))
            except MalformedRecordError as e:
                logger.warning("Skipping remote file: {}", e)
                continue
            notes.append(mark_synced(note, str(file_obj["id"])))
        logger.debug("Drive: {} notes downloaded", len(notes))
        return notes

    def _delete(self, remote_file_id: str) -> None:
        url = f"{DRIVE_API_BASE}/files/{remote_file_id}"
        try:
            r = self.sess.request("DELETE", url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransientIOError(f"Drive DELETE failed: {e}") from e
        if r.status_code == 404:
            logger.debug("Drive file {} already gone", remote_file_id)
            return
        if r.status_code >= 400:
            msg = f"Drive DELETE {url} -> {r.status_code}: {r.text[:200]}"
            raise TransientIOError(msg)

    async def ensure_container(self, owner_key: str) -> str:
        return await asyncio.to_thread(self._ensure_container, owner_key)

    async def upload(self, note: Note, container_id: str) -> str:
        return await asyncio.to_thread(self._upload, note, container_id)

    async def list_and_download_all(self, container_id: str) -> list[Note]:
        return await asyncio.to_thread(self._list_and_download_all, container_id)

    async def delete(self, remote_file_id: str) -> None:
        await asyncio.to_thread(self._delete, remote_file_id)
