"""Configuration constants for dailynote-sync."""

import os
from pathlib import Path

# Local notes folder. First directory which is found is used.
NOTES_DIRECTORIES: list[Path] = [
    Path("~/DailyNotes").expanduser(),
    Path("~/Documents/DailyNotes").expanduser(),
    Path("~/.local/share/dailynote-sync/notes").expanduser(),
]

# Directory with the sync state database. First directory which is found is used,
# the last entry is created on demand.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/dailynote-sync").expanduser(),
    Path("~/.config/dailynote-sync").expanduser(),
]

# Google Drive OAuth access token. First file found is used.
DRIVE_TOKEN_FILES: list[Path] = [
    Path("~/.config/dailynote-drive-token.txt").expanduser(),
    Path("~/.config/secret/dailynote-drive-token.txt").expanduser(),
]

STATE_DB_NAME = "state.db"

# Top-level Drive folder; each owner gets a subfolder named after their key.
DRIVE_ROOT_FOLDER = "DailyNotes"

# Seconds between automatic sync passes.
SYNC_INTERVAL = 600

# Key/value storage keys.
SUPPRESSED_IDS_KEY = "dailynote-suppressed-ids"
LAST_SYNC_KEY = "last-sync-time"
FOLDER_ID_KEY = "drive-folder-id"


def resolve_notes_directory() -> Path:
    """Return the local notes directory.

    DAILYNOTE_NOTES_DIR wins; otherwise the first existing entry of
    NOTES_DIRECTORIES, falling back to the first entry.
    """
    env_dir = os.environ.get("DAILYNOTE_NOTES_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in NOTES_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return NOTES_DIRECTORIES[0]


def resolve_data_directory() -> Path:
    """Return the state directory (DAILYNOTE_DATA_DIR, else first existing, else first)."""
    env_dir = os.environ.get("DAILYNOTE_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]
