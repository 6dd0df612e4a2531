"""SQLite-backed key/value storage that survives console restarts."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol


_UPSERT_SQL = (
    "INSERT INTO local_storage (key, value) VALUES (?, ?) "
    "ON CONFLICT(key) DO UPDATE SET value = excluded.value"
)


class LocalStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def set_items(self, items: Mapping[str, str]) -> None: ...

    def remove_item(self, key: str) -> None: ...


class SqliteLocalStorage:
    """String key/value pairs in a single SQLite table.

    Errors from SQLite (``sqlite3.Error``) and the filesystem (``OSError``)
    propagate; callers decide whether a failed write matters.
    """

    def __init__(self, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.Lock()
        self._closed = False
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS local_storage (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        self._conn.commit()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            cur = self._conn.execute("SELECT value FROM local_storage WHERE key = ?", (key,))
            row = cur.fetchone()
        return None if row is None else row[0]

    def set_item(self, key: str, value: str) -> None:
        self.set_items({key: value})

    def set_items(self, items: Mapping[str, str]) -> None:
        """Upsert every pair in one transaction; on error none are written."""
        with self._lock, self._conn:
            self._conn.executemany(_UPSERT_SQL, list(items.items()))

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True


class MemoryLocalStorage:
    """Process-local stand-in used when no durable storage is available."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def set_items(self, items: Mapping[str, str]) -> None:
        self._items.update(items)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)
