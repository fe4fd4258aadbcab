#!/usr/bin/env python3
"""
TTL Cache Layer
Expiring JSON values on top of a plain string key-value store

Implements:
- set(key, value, option) → normalized key | None
- get(key) → value | None | malformed payload
- delete(key) → normalized key
- clear_expires() → [removed keys]
- clear()
"""

import logging
import time
from typing import Any, Callable, List, Optional

from .backends import BackingStore, MemoryStorage, SQLiteStorage
from .envelope import CacheEnvelope, Effectiveness, Raw, classify, decode, encode
from .expiry import compute_deadline
from .keys import normalize_key

logger = logging.getLogger(__name__)

STORAGE_KINDS = ("local", "session")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


# Passed (or defaulted) as the value to set() to mean "delete this key"
MISSING = _Missing()


def _now_ms() -> int:
    return int(time.time() * 1000)


class TTLCache:
    """
    Envelope cache with per-key expiry.

    Design principles:
    - Every value is stored as {"e": deadline_ms, "v": value}, e=0 never expires
    - Expired entries are removed the moment they are read
    - Foreign data under a key is handed back as-is, never an error
    - Write failures are logged and reported as None, never raised
    """

    def __init__(self, storage: BackingStore, clock: Callable[[], int] = None):
        """Wrap a backing store. clock returns epoch milliseconds."""
        self.storage = storage
        self._clock = clock or _now_ms

    def set(self, key: Any, value: Any = MISSING, option: Any = None) -> Optional[str]:
        """
        Store a value under key.

        Args:
            key: Any JSON-renderable key
            value: Any JSON-serializable value; MISSING deletes the key instead
            option: {"date": ...} or {"second"|"hour"|"day"|"month": amount}

        Returns:
            Normalized key on success, None if the write failed
        """
        key = normalize_key(key)
        if value is MISSING:
            return self.delete(key)

        envelope = CacheEnvelope(e=compute_deadline(option, self._clock()), v=value)
        try:
            self.storage.set_item(key, encode(envelope))
            logger.debug(f"Stored {key} (expires={envelope.e or 'never'})")
            return key
        except Exception as e:
            logger.error(f"Cache write error for {key}: {e}")
            return None

    def get(self, key: Any) -> Any:
        """
        Read a value.

        Returns:
            The stored value if still valid, None if absent or expired, or the
            decoded payload itself when the entry is not a cache envelope
        """
        key = normalize_key(key)
        decoded = decode(self.storage.get_item(key))
        state = classify(decoded, self._clock())

        if state is Effectiveness.MALFORMED:
            return decoded.text if isinstance(decoded, Raw) else decoded.value
        if state is Effectiveness.VALID:
            return decoded.value["v"]

        self.storage.remove_item(key)
        logger.debug(f"Expired on read: {key}")
        return None

    def delete(self, key: Any) -> str:
        """Remove key from the store. Removing an absent key is fine."""
        key = normalize_key(key)
        self.storage.remove_item(key)
        return key

    def clear_expires(self) -> List[str]:
        """
        Remove every expired entry. Run periodically.

        Keys are enumerated once up front; entries written by someone else
        during the sweep may be missed.
        """
        keys = [self.storage.key(i) for i in range(self.storage.length)]
        now = self._clock()
        removed = []

        for key in keys:
            if key is None:
                continue
            decoded = decode(self.storage.get_item(key))
            if classify(decoded, now) is Effectiveness.EXPIRED:
                self.storage.remove_item(key)
                removed.append(key)

        if removed:
            logger.info(f"Cleared {len(removed)} expired cache entries")
        return removed

    def clear(self):
        """Remove everything from the store, expired or not."""
        self.storage.clear()
        logger.info("Cache cleared")


def create_storage(kind: str = "local", db_path: str = None,
                   quota_bytes: Optional[int] = None) -> TTLCache:
    """
    Build a TTLCache over one of the bundled stores.

    Args:
        kind: "local" (SQLite, persistent) or "session" (in-memory)
        db_path: SQLite file for "local"
        quota_bytes: byte cap for "session"
    """
    if kind not in STORAGE_KINDS:
        logger.warning(f"Unknown storage kind {kind!r}, using 'local'")
        kind = "local"

    if kind == "session":
        return TTLCache(MemoryStorage(quota_bytes=quota_bytes))
    return TTLCache(SQLiteStorage(db_path))


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)

    cache = create_storage("session")
    cache.set("status", {"health": "ok"}, {"second": 1})
    cache.set(["user", 42], "forever")

    print(f"status → {cache.get('status')}")
    print(f"user → {cache.get(['user', 42])}")

    time.sleep(1.1)
    print(f"swept → {cache.clear_expires()}")
    print(f"status after sweep → {cache.get('status')}")
