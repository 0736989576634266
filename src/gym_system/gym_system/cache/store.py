"""Local key-value cache store.

Holds the last-known snapshot of users, subscriptions and attendance. Every
operation is fail-soft: errors are logged and the caller continues as though
the cache were empty.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Protocol

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class SQLiteCacheStore(CacheStore):
    """JSON values in a single SQLite table, one row per key."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._ready = False

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _ensure_table(self) -> None:
        if self._ready:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._conn() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
        self._ready = True

    def get(self, key: str) -> Optional[Any]:
        try:
            self._ensure_table()
            with self._conn() as conn:
                row = conn.execute("SELECT value FROM cache_entries WHERE key = ?", (key,)).fetchone()
            return json.loads(row[0]) if row else None
        except (sqlite3.Error, OSError, ValueError) as e:
            logger.warning("Error retrieving cache key %s: %s", key, e)
            return None

    def set(self, key: str, value: Any) -> None:
        try:
            self._ensure_table()
            payload = json.dumps(value, ensure_ascii=False)
            with self._conn() as conn:
                conn.execute(
                    """
                    INSERT INTO cache_entries(key, value) VALUES(?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value
                    """,
                    (key, payload),
                )
        except (sqlite3.Error, OSError, TypeError, ValueError) as e:
            logger.warning("Error storing cache key %s: %s", key, e)

    def remove(self, key: str) -> None:
        try:
            self._ensure_table()
            with self._conn() as conn:
                conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        except (sqlite3.Error, OSError) as e:
            logger.warning("Error removing cache key %s: %s", key, e)

    def clear(self) -> None:
        try:
            self._ensure_table()
            with self._conn() as conn:
                conn.execute("DELETE FROM cache_entries")
        except (sqlite3.Error, OSError) as e:
            logger.warning("Error clearing cache: %s", e)


class MemoryCacheStore(CacheStore):
    """In-process store; values are round-tripped through JSON like the SQLite store."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.warning("Error storing cache key %s: %s", key, e)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()
