"""Tests for directory resolution."""

from pathlib import Path

import pytest

from dailynote_sync import config


def test_environment_overrides_notes_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("DAILYNOTE_NOTES_DIR", str(tmp_path / "mine"))

    assert config.resolve_notes_directory() == tmp_path / "mine"


def test_first_existing_notes_directory_wins(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("DAILYNOTE_NOTES_DIR", raising=False)
    (tmp_path / "b").mkdir()
    monkeypatch.setattr(config, "NOTES_DIRECTORIES", [tmp_path / "a", tmp_path / "b"])

    assert config.resolve_notes_directory() == tmp_path / "b"


def test_falls_back_to_first_data_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("DAILYNOTE_DATA_DIR", raising=False)
    monkeypatch.setattr(config, "DATA_DIRECTORIES", [tmp_path / "x", tmp_path / "y"])

    assert config.resolve_data_directory() == tmp_path / "x"


def test_environment_overrides_data_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("DAILYNOTE_DATA_DIR", str(tmp_path / "state"))

    assert config.resolve_data_directory() == tmp_path / "state"
