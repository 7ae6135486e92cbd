from __future__ import annotations

import logging
import os
import sqlite3
import time
from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
PROGRESS_PATH_ENV = "HEAL_CODE_PROGRESS_PATH"


def open_db(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        # Single-row table: the id is pinned to 1.
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS progress (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                level INTEGER NOT NULL,
                updated_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


class ProgressStore:
    """Durable home of the single persisted value: the reached level number.

    Absence of a row means a fresh player, reported as level 1. Errors from
    sqlite or the filesystem propagate to the caller.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @classmethod
    def default_path(cls) -> Path:
        explicit = os.environ.get(PROGRESS_PATH_ENV)
        if explicit:
            return Path(explicit).expanduser()
        return Path.home() / ".heal_code_progress.sqlite3"

    @property
    def path(self) -> Path:
        return self._path

    def load_level(self) -> int:
        if not self._path.exists():
            return 1
        conn = open_db(self._path)
        try:
            row = conn.execute("SELECT level FROM progress WHERE id = 1").fetchone()
        finally:
            conn.close()
        if row is None:
            return 1
        level = int(row[0])
        if level < 1:
            logger.warning("ignoring stored level %d in %s", level, self._path)
            return 1
        return level

    def save_level(self, level: int) -> None:
        if int(level) < 1:
            raise ValueError("level must be >= 1")
        conn = open_db(self._path)
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO progress(id, level, updated_at_utc) VALUES (1, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET level = excluded.level, updated_at_utc = excluded.updated_at_utc
                    """,
                    (int(level), _utc_now_iso()),
                )
        finally:
            conn.close()
        logger.debug("saved level %d to %s", level, self._path)

    def clear(self) -> None:
        if not self._path.exists():
            return
        conn = open_db(self._path)
        try:
            with conn:
                conn.execute("DELETE FROM progress")
        finally:
            conn.close()
