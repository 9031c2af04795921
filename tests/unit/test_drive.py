"""Tests for DriveRemoteStore with a mocked requests.Session."""

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests

from dailynote_sync.core.codec import encode
from dailynote_sync.errors import TransientIOError
from dailynote_sync.stores.drive import DriveRemoteStore, _quote
from tests.unit.fakes import make_note

NOTE_ID = "2026-01-27_05-41-12"


@pytest.fixture
def drive_with_mock_session() -> tuple[DriveRemoteStore, MagicMock]:
    """Create a DriveRemoteStore with a mocked requests.Session."""
    with patch("dailynote_sync.stores.drive.requests.Session") as mock_session_cls:
        mock_session = MagicMock()
        mock_session.headers = {}
        mock_session_cls.return_value = mock_session
        drive = DriveRemoteStore("test-token")

    return drive, mock_session


def _make_response(
    data: dict[str, Any] | None = None, *, status: int = 200, text: str = ""
) -> MagicMock:
    """Create a mock HTTP response."""
    response = MagicMock()
    response.status_code = status
    response.json.return_value = data or {}
    response.text = text
    return response


def test_init_reads_token_from_first_found_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    token_file = tmp_path / "token.txt"
    token_file.write_text("my-secret-token\n")
    monkeypatch.setattr(
        "dailynote_sync.stores.drive.DRIVE_TOKEN_FILES",
        [tmp_path / "missing.txt", token_file],
    )

    with patch("dailynote_sync.stores.drive.requests.Session") as mock_session_cls:
        mock_session_cls.return_value.headers = {}
        drive = DriveRemoteStore()

    assert drive.token == "my-secret-token"
    assert drive.sess.headers["Authorization"] == "Bearer my-secret-token"


def test_init_raises_when_no_token_file_exists(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        "dailynote_sync.stores.drive.DRIVE_TOKEN_FILES",
        [tmp_path / "a.txt", tmp_path / "b.txt"],
    )

    with pytest.raises(RuntimeError, match="Cannot find Drive token"):
        DriveRemoteStore()


def test_quote_escapes_query_literals() -> None:
    assert _quote("it's") == "it\\'s"
    assert _quote("a\\b") == "a\\\\b"


@pytest.mark.asyncio
async def test_ensure_container_creates_missing_folders(
    drive_with_mock_session: tuple[DriveRemoteStore, MagicMock],
) -> None:
    """Root folder is found, the owner folder is created inside it."""
    drive, sess = drive_with_mock_session
    sess.request.side_effect = [
        _make_response({"files": [{"id": "root-folder", "name": "DailyNotes"}]}),
        _make_response({"files": []}),
        _make_response({"id": "owner-folder"}),
    ]

    folder_id = await drive.ensure_container("me@example.com")

    assert folder_id == "owner-folder"
    method, url = sess.request.call_args.args
    assert (method, url) == ("POST", "https://www.googleapis.com/drive/v3/files")
    assert sess.request.call_args.kwargs["json"] == {
        "name": "me@example.com",
        "mimeType": "application/vnd.google-apps.folder",
        "parents": ["root-folder"],
    }


@pytest.mark.asyncio
async def test_upload_patches_existing_file(
    drive_with_mock_session: tuple[DriveRemoteStore, MagicMock],
) -> None:
    drive, sess = drive_with_mock_session
    note = make_note()
    sess.request.side_effect = [
        _make_response({"files": [{"id": "file-9"}]}),
        _make_response({"id": "file-9"}),
    ]

    file_id = await drive.upload(note, "folder-1")

    assert file_id == "file-9"
    method, url = sess.request.call_args.args
    assert method == "PATCH"
    assert url == "https://www.googleapis.com/upload/drive/v3/files/file-9"
    assert sess.request.call_args.kwargs["data"] == encode(note).encode("utf-8")


@pytest.mark.asyncio
async def test_upload_creates_new_file_with_multipart_body(
    drive_with_mock_session: tuple[DriveRemoteStore, MagicMock],
) -> None:
    drive, sess = drive_with_mock_session
    note = make_note(content="Morning pages")
    sess.request.side_effect = [
        _make_response({"files": []}),
        _make_response({"id": "new-file"}),
    ]

    file_id = await drive.upload(note, "folder-1")

    assert file_id == "new-file"
    kwargs = sess.request.call_args.kwargs
    assert kwargs["params"]["uploadType"] == "multipart"
    assert kwargs["headers"]["Content-Type"].startswith("multipart/related; boundary=")
    body = kwargs["data"].decode("utf-8")
    assert f'"name": "{NOTE_ID}.txt"' in body
    assert '"parents": ["folder-1"]' in body
    assert encode(note) in body


@pytest.mark.asyncio
async def test_list_and_download_all_skips_malformed_files(
    drive_with_mock_session: tuple[DriveRemoteStore, MagicMock],
) -> None:
    drive, sess = drive_with_mock_session
    note = make_note()
    sess.request.side_effect = [
        _make_response(
            {
                "files": [{"id": "f1", "name": f"{NOTE_ID}.txt"}],
                "nextPageToken": "page-2",
            }
        ),
        _make_response({"files": [{"id": "f2", "name": "junk.txt"}]}),
        _make_response(text=encode(note)),
        _make_response(text="not a valid header block"),
    ]

    notes = await drive.list_and_download_all("folder-1")

    assert len(notes) == 1
    assert notes[0].id == NOTE_ID
    assert notes[0].content == note.content
    assert notes[0].is_synced is True
    assert notes[0].remote_file_id == "f1"
    second_page_params = sess.request.call_args_list[1].kwargs["params"]
    assert second_page_params["pageToken"] == "page-2"


@pytest.mark.asyncio
async def test_delete_treats_missing_file_as_done(
    drive_with_mock_session: tuple[DriveRemoteStore, MagicMock],
) -> None:
    drive, sess = drive_with_mock_session
    sess.request.return_value = _make_response(status=404, text="not found")

    await drive.delete("gone")

    method, url = sess.request.call_args.args
    assert (method, url) == ("DELETE", "https://www.googleapis.com/drive/v3/files/gone")


@pytest.mark.asyncio
async def test_delete_raises_on_server_error(
    drive_with_mock_session: tuple[DriveRemoteStore, MagicMock],
) -> None:
    drive, sess = drive_with_mock_session
    sess.request.return_value = _make_response(status=503, text="backend error")

    with pytest.raises(TransientIOError, match="503"):
        await drive.delete("file-1")


@pytest.mark.asyncio
async def test_connection_error_becomes_transient(
    drive_with_mock_session: tuple[DriveRemoteStore, MagicMock],
) -> None:
    drive, sess = drive_with_mock_session
    sess.request.side_effect = requests.ConnectionError("offline")

    with pytest.raises(TransientIOError, match="offline"):
        await drive.list_and_download_all("folder-1")


@pytest.mark.asyncio
async def test_error_status_on_listing_is_transient(
    drive_with_mock_session: tuple[DriveRemoteStore, MagicMock],
) -> None:
    drive, sess = drive_with_mock_session
    sess.request.return_value = _make_response(status=401, text="invalid credentials")

    with pytest.raises(TransientIOError, match="401"):
        await drive.ensure_container("me@example.com")


@pytest.mark.asyncio
async def test_list_and_download_all_ignores_non_note_names(
    drive_with_mock_session: tuple[DriveRemoteStore, MagicMock],
) -> None:
    """Plain-text files without the .txt suffix are never downloaded."""
    drive, sess = drive_with_mock_session
    note = make_note()
    sess.request.side_effect = [
        _make_response(
            {
                "files": [
                    {"id": "f0", "name": "notes.md"},
                    {"id": "f1", "name": f"{NOTE_ID}.txt"},
                ]
            }
        ),
        _make_response(text=encode(note)),
    ]

    notes = await drive.list_and_download_all("folder-1")

    assert [n.id for n in notes] == [NOTE_ID]
    assert sess.request.call_count == 2
    _method, url = sess.request.call_args.args
    assert url.endswith("/files/f1")
