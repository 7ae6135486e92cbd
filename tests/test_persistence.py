from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from heal_code.persistence import PROGRESS_PATH_ENV, SCHEMA_VERSION, ProgressStore, open_db


def test_missing_database_means_level_one(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.sqlite3")
    assert store.load_level() == 1
    assert not store.path.exists()


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "progress.sqlite3"
    store = ProgressStore(path)
    store.save_level(4)
    store.save_level(6)

    assert ProgressStore(path).load_level() == 6
    conn = sqlite3.connect(path)
    try:
        assert conn.execute("SELECT COUNT(*) FROM progress").fetchone()[0] == 1
    finally:
        conn.close()


def test_clear_forgets_progress(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.sqlite3")
    store.clear()
    store.save_level(9)
    store.clear()
    assert store.load_level() == 1


def test_invalid_level_is_rejected(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.sqlite3")
    with pytest.raises(ValueError):
        store.save_level(0)


def test_schema_version_is_recorded(tmp_path: Path) -> None:
    conn = open_db(tmp_path / "progress.sqlite3")
    try:
        assert conn.execute("PRAGMA user_version;").fetchone()[0] == SCHEMA_VERSION
        # Re-running the migration is a no-op.
        conn.close()
        conn = open_db(tmp_path / "progress.sqlite3")
        assert conn.execute("PRAGMA user_version;").fetchone()[0] == SCHEMA_VERSION
    finally:
        conn.close()


def test_default_path_honours_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(PROGRESS_PATH_ENV, str(tmp_path / "custom.sqlite3"))
    assert ProgressStore.default_path() == tmp_path / "custom.sqlite3"

    monkeypatch.delenv(PROGRESS_PATH_ENV)
    assert ProgressStore.default_path().name == ".heal_code_progress.sqlite3"
