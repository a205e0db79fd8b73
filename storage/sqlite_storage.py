from __future__ import annotations

import sqlite3
import threading

from domain.errors import StorageWriteFailure

from .base import KeyValueStorage

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SQLiteStorage(KeyValueStorage):
    """SQLite-backed key-value adapter without domain/business logic."""

    def __init__(self, db_path: str = "budgeto.db") -> None:
        self._db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._conn.execute("PRAGMA journal_mode = WAL;")
        self.initialize_schema()

    def close(self) -> None:
        self._conn.close()

    def initialize_schema(self) -> None:
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return None if row is None else str(row["value"])

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._set_item(key, value)

    def _set_item(self, key: str, value: str) -> None:
        try:
            self._conn.execute(
                """
                INSERT INTO kv_store (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, str(value)),
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise StorageWriteFailure(key, str(exc)) from exc

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._remove_item(key)

    def _remove_item(self, key: str) -> None:
        try:
            self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            self._conn.commit()
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise StorageWriteFailure(key, str(exc)) from exc

    def keys(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [str(row["key"]) for row in rows]
