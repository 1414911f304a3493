"""
Cache store for normalized product info.

Stores values in-memory with per-entry TTL expiration.
"""
from abc import ABC, abstractmethod
import threading
import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple


class CacheStore(ABC):
    """Key-value store with per-entry time-to-live."""

    @abstractmethod
    def get(self, key: str) -> Tuple[Any, bool]:
        """Return (value, found); expired entries are not found."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store a value for ttl seconds, replacing any previous value."""

    def set_many(self, items: Iterable[Tuple[str, Any]], ttl: float) -> None:
        """Store several values with the same ttl."""
        for key, value in items:
            self.set(key, value, ttl)


class InMemoryCacheStore(CacheStore):
    """
    Thread-safe in-memory cache store.

    A single lock guards every read and write, so set_many commits a batch that
    readers either see completely or not at all.
    """

    def __init__(self, cleanup_interval: float = 3600, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the store.

        Args:
            cleanup_interval: Seconds between sweeps of expired entries
            clock: Monotonic time source in seconds
        """
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = clock()

    def get(self, key: str) -> Tuple[Any, bool]:
        with self._lock:
            self._maybe_cleanup()
            entry = self._entries.get(key)
            if entry is None:
                return None, False
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None, False
            return value, True

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def set_many(self, items: Iterable[Tuple[str, Any]], ttl: float) -> None:
        # Materialize first so a failing iterator commits nothing
        batch = list(items)
        with self._lock:
            expires_at = self._clock() + ttl
            for key, value in batch:
                self._entries[key] = (value, expires_at)

    def _maybe_cleanup(self) -> None:
        """Drop expired entries periodically, the caller holds the lock."""
        now = self._clock()
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def get_stats(self) -> Dict[str, Any]:
        """
        Get store statistics (for debugging/monitoring).

        Returns:
            Dictionary with stats
        """
        with self._lock:
            return {"total_entries": len(self._entries)}


# Global singleton instance
_cache_store: Optional[InMemoryCacheStore] = None


def get_cache_store() -> InMemoryCacheStore:
    """
    Get the global cache store instance.

    Returns:
        InMemoryCacheStore instance
    """
    global _cache_store
    if _cache_store is None:
        _cache_store = InMemoryCacheStore()
    return _cache_store
