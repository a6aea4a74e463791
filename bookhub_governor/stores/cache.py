"""
Response cache with per-entry TTL.

Entries expire lazily on lookup and are swept by the governor's background
task. An optional entry cap evicts the oldest entry by timestamp.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from ..types import CacheEntry

logger = logging.getLogger(__name__)


class CacheStore:
    """
    Key -> CacheEntry map.

    Usage:
        cache = CacheStore(default_ttl=30.0)
        cache.set("GET:/api/books:", books)
        if cache.is_valid("GET:/api/books:"):
            books = cache.get("GET:/api/books:").data
    """

    def __init__(
        self,
        default_ttl: float = 30.0,
        max_entries: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache store.

        Args:
            default_ttl: TTL in seconds when set() is called without one
            max_entries: Entry cap, 0 for unbounded
            clock: Monotonic time source
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be greater than 0")
        if max_entries < 0:
            raise ValueError("max_entries must be 0 (unbounded) or positive")
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for key (valid or not), or None."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> CacheEntry:
        """Store data under key, replacing any previous entry."""
        entry = CacheEntry(
            key=key,
            data=data,
            timestamp=self._clock(),
            ttl=self._default_ttl if ttl is None else ttl,
        )
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = entry
            if self._max_entries and len(self._entries) > self._max_entries:
                self._evict_oldest_locked()
        return entry

    def is_valid(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            return entry.is_valid(self._clock())

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return the entry only if it is still valid."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.is_valid(self._clock()):
                return None
            return entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with prefix. Returns count removed."""
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def clear_expired(self) -> int:
        """Remove every expired entry. Returns count removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if not e.is_valid(now)]
            for k in expired:
                del self._entries[k]
        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def _evict_oldest_locked(self) -> None:
        while len(self._entries) > self._max_entries:
            oldest = min(self._entries.values(), key=lambda e: e.timestamp)
            del self._entries[oldest.key]
            logger.debug(f"Cache full, evicted {oldest.key}")
