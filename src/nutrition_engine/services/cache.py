"""Simple cache abstractions."""

import threading
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Cache(Protocol):
    """Cache interface for simple key-value data."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL in seconds."""

    def clear(self) -> None:
        """Drop every cached value."""

    def __len__(self) -> int:
        """Return the number of stored entries."""


@dataclass
class _CacheEntry:
    value: object
    expires_at: datetime


class TtlCache(Cache):
    """In-memory TTL cache bounded by a sweep of expired entries.

    Once the number of entries exceeds ``max_entries``, every expired entry
    is removed on the next insert. Live entries are never evicted early, so
    this is not an LRU.
    """

    def __init__(self, max_entries: int = 100) -> None:
        self.max_entries = max_entries
        self.hits = 0
        self.misses = 0
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> object | None:
        """Return a cached value if it hasn't expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if datetime.now(tz=UTC) >= entry.expires_at:
                self._entries.pop(key, None)
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL."""
        now = datetime.now(tz=UTC)
        expires_at = now + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._entries[key] = _CacheEntry(value=value, expires_at=expires_at)
            if len(self._entries) > self.max_entries:
                expired = [
                    cached_key
                    for cached_key, entry in self._entries.items()
                    if now >= entry.expires_at
                ]
                for cached_key in expired:
                    del self._entries[cached_key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
