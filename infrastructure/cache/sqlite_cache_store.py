"""SQLite-хранилище для кэша результатов поиска контекста."""
from __future__ import annotations

import json
import sqlite3
import time
from pathlib import Path
from typing import Any, Callable

from domain.errors import CacheError
from domain.interfaces import CacheStore


class SqliteCacheStore(CacheStore):
    """Хранит JSON-значения в лёгкой SQLite-базе со сроком жизни записи."""

    def __init__(
        self,
        db_path: str | Path = "contextretrieval-cache.db",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = Path(db_path)
        self._clock = clock
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_schema(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS schema_version (
                        id INTEGER PRIMARY KEY CHECK (id = 1),
                        version INTEGER NOT NULL
                    )
                    """
                )
                conn.execute("INSERT OR IGNORE INTO schema_version (id, version) VALUES (1, 1)")
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS cache_entries (
                        cache_key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        expires_at REAL NOT NULL
                    )
                    """
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_cache_entries_expires_at ON cache_entries (expires_at)")
        except sqlite3.Error as exc:
            raise CacheError(f"Cannot initialise cache database {self._db_path}") from exc

    def get(self, key: str) -> Any | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value, expires_at FROM cache_entries WHERE cache_key = ?",
                    (key,),
                ).fetchone()
                if row is None:
                    return None
                if row[1] <= self._clock():
                    conn.execute("DELETE FROM cache_entries WHERE cache_key = ?", (key,))
                    return None
        except sqlite3.Error as exc:
            raise CacheError("Cache read failed") from exc
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as exc:
            raise CacheError("Cache entry is not valid JSON") from exc

    def set(self, key: str, value: Any, ttl: int) -> None:
        try:
            encoded = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise CacheError("Cache value is not JSON serialisable") from exc
        try:
            with self._connect() as conn:
                conn.execute(
                    "REPLACE INTO cache_entries (cache_key, value, expires_at) VALUES (?, ?, ?)",
                    (key, encoded, self._clock() + ttl),
                )
        except sqlite3.Error as exc:
            raise CacheError("Cache write failed") from exc

    def delete(self, key: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM cache_entries WHERE cache_key = ?", (key,))
        except sqlite3.Error as exc:
            raise CacheError("Cache delete failed") from exc

    def clear(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM cache_entries")
        except sqlite3.Error as exc:
            raise CacheError("Cache clear failed") from exc

    def purge_expired(self) -> int:
        """Удалить просроченные записи и вернуть их количество."""
        try:
            with self._connect() as conn:
                cursor = conn.execute("DELETE FROM cache_entries WHERE expires_at <= ?", (self._clock(),))
                return cursor.rowcount
        except sqlite3.Error as exc:
            raise CacheError("Cache purge failed") from exc


__all__ = ["SqliteCacheStore"]
