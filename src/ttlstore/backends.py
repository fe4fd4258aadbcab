#!/usr/bin/env python3
"""
Backing stores for the TTL cache.

A backing store is a synchronous, string-keyed, string-valued key-value store
with index-based enumeration. Two implementations ship here:

- MemoryStorage: session-scoped, lives as long as the process
- SQLiteStorage: persistent, one row per key in a SQLite table

Anything else implementing BackingStore can be handed to TTLCache.
"""

import logging
import os
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.path.expanduser("~/.ttlstore/storage.db")


class StorageError(Exception):
    """The backing store rejected a write."""


class QuotaExceededError(StorageError):
    """The write would take the store over its byte quota."""


@runtime_checkable
class BackingStore(Protocol):
    """Key-value contract consumed by TTLCache."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...

    @property
    def length(self) -> int:
        ...

    def key(self, index: int) -> Optional[str]:
        ...


class MemoryStorage:
    """
    In-process store, insertion ordered.

    quota_bytes caps the UTF-8 size of all keys plus values. Overwriting a key
    frees its old value before the quota is checked.
    """

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self._items: Dict[str, str] = {}
        self._quota_bytes = quota_bytes
        self._key_list: Optional[List[str]] = None  # rebuilt after inserts/removals

    @staticmethod
    def _size(key: str, value: str) -> int:
        return len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def used_bytes(self) -> int:
        return sum(self._size(k, v) for k, v in self._items.items())

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._quota_bytes is not None:
            used = self.used_bytes()
            if key in self._items:
                used -= self._size(key, self._items[key])
            needed = used + self._size(key, value)
            if needed > self._quota_bytes:
                raise QuotaExceededError(
                    f"Setting {key!r} needs {needed} bytes, quota is {self._quota_bytes}"
                )
        if key not in self._items:
            self._key_list = None
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._key_list = None

    def clear(self) -> None:
        self._items.clear()
        self._key_list = None

    @property
    def length(self) -> int:
        return len(self._items)

    def key(self, index: int) -> Optional[str]:
        if index < 0 or index >= len(self._items):
            return None
        if self._key_list is None:
            self._key_list = list(self._items)
        return self._key_list[index]


class SQLiteStorage:
    """
    SQLite-backed store.

    Design:
    - One table, key is the primary key
    - Index order = rowid order (insertion order, overwrites keep their slot)
    - Every write commits immediately
    """

    def __init__(self, db_path: str = None):
        """Open (or create) the store at db_path."""
        if db_path is None:
            db_path = DEFAULT_DB_PATH

        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(db_path, check_same_thread=False, timeout=10.0)
        self._init_schema()

        logger.info(f"SQLiteStorage opened at {db_path}")

    def _init_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS storage (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        self.conn.commit()

    def get_item(self, key: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT value FROM storage WHERE key = ?", (key,)
        ).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        try:
            # UPSERT keeps the rowid, so enumeration order survives overwrites
            self.conn.execute("""
                INSERT INTO storage (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """, (key, value))
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StorageError(f"Failed to write {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        self.conn.execute("DELETE FROM storage WHERE key = ?", (key,))
        self.conn.commit()

    def clear(self) -> None:
        self.conn.execute("DELETE FROM storage")
        self.conn.commit()

    @property
    def length(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM storage").fetchone()[0]

    def key(self, index: int) -> Optional[str]:
        if index < 0:
            return None
        row = self.conn.execute(
            "SELECT key FROM storage ORDER BY rowid LIMIT 1 OFFSET ?", (index,)
        ).fetchone()
        return row[0] if row else None

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("SQLiteStorage closed")
