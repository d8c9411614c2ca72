from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock
from typing import Optional


class BlobStorage:
    """SQLite-backed key/value storage for durable blobs and one-shot flags.

    Blobs and flags live in separate tables so ordinary store reads and writes
    never touch the flags. Writers sharing the same file follow
    last-writer-wins; there is no merge and no version token.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS blobs (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS flags (
                key TEXT PRIMARY KEY,
                value INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def get_blob(self, key: str) -> Optional[str]:
        with self._lock:
            cursor = self._conn.execute("SELECT value FROM blobs WHERE key = ?", (key,))
            row = cursor.fetchone()
        return row[0] if row else None

    def set_blob(self, key: str, value: str) -> None:
        with self._lock:
            try:
                self._conn.execute(
                    """
                    INSERT INTO blobs(key, value, updated_at)
                    VALUES(?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                    """,
                    (key, value),
                )
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise

    def has_blob(self, key: str) -> bool:
        with self._lock:
            cursor = self._conn.execute("SELECT 1 FROM blobs WHERE key = ?", (key,))
            row = cursor.fetchone()
        return bool(row)

    def delete_blob(self, key: str) -> bool:
        with self._lock:
            cursor = self._conn.execute("DELETE FROM blobs WHERE key = ?", (key,))
            self._conn.commit()
        return cursor.rowcount > 0

    def list_blob_keys(self) -> list[str]:
        with self._lock:
            cursor = self._conn.execute("SELECT key FROM blobs ORDER BY key")
            rows = cursor.fetchall()
        return [row[0] for row in rows]

    def get_flag(self, key: str) -> bool:
        with self._lock:
            cursor = self._conn.execute("SELECT value FROM flags WHERE key = ?", (key,))
            row = cursor.fetchone()
        return bool(row and row[0])

    def set_flag(self, key: str, value: bool = True) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO flags(key, value, updated_at)
                VALUES(?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """,
                (key, 1 if value else 0),
            )
            self._conn.commit()

    def clear_flag(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM flags WHERE key = ?", (key,))
            self._conn.commit()
