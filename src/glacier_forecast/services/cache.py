"""
In-process response cache with per-entry TTL.

Entries expire lazily on read. ``set()`` also sweeps every expired entry once
``sweep_interval`` seconds have passed since the previous sweep, so entries
under keys that are never read again do not pile up.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional


_MISSING = object()


@dataclass
class CacheEntry:
    """Cached value with its insertion time and lifetime."""

    value: Any
    inserted_at: float
    ttl_seconds: float

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at > self.ttl_seconds


class TTLCache:
    """Thread-safe key/value cache with expiry per entry."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 60.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize cache.

        Args:
            clock: Monotonic time source in seconds
            sweep_interval: Minimum seconds between sweeps triggered by ``set``
            logger: Logger instance
        """
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._lock = threading.Lock()
        self.sweep_interval = sweep_interval
        self._last_sweep = clock()
        self.logger = logger or logging.getLogger(__name__)

    def _lookup(self, key: Hashable) -> Any:
        """Stored value, or ``_MISSING`` when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return _MISSING
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self.logger.debug(f"Cache expired: {key}")
                return _MISSING
            return entry.value

    def get(self, key: Hashable) -> Optional[Any]:
        """
        Get a cached value.

        Args:
            key: Cache key

        Returns:
            The value, or None when missing or expired (expired entries are removed)
        """
        value = self._lookup(key)
        return None if value is _MISSING else value

    def set(self, key: Hashable, value: Any, ttl_seconds: float) -> None:
        """
        Store a value.

        Args:
            key: Cache key
            value: Value to store
            ttl_seconds: Lifetime in seconds

        Raises:
            ValueError: If ttl_seconds is negative
        """
        if ttl_seconds < 0:
            raise ValueError(f"TTL must be non-negative, got {ttl_seconds}")
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(value, now, ttl_seconds)
            sweep_due = now - self._last_sweep >= self.sweep_interval
        if sweep_due:
            self.sweep()

    def get_or_set(self, key: Hashable, factory: Callable[[], Any], ttl_seconds: float) -> Any:
        """
        Return the cached value or compute, store and return it.

        A stored None counts as a hit. The factory runs outside the lock;
        concurrent misses may compute twice.
        """
        value = self._lookup(key)
        if value is not _MISSING:
            return value
        value = factory()
        self.set(key, value, ttl_seconds)
        return value

    def delete(self, key: Hashable) -> bool:
        """Remove an entry. Returns True when it existed."""
        with self._lock:
            return self._entries.pop(key, _MISSING) is not _MISSING

    def sweep(self) -> int:
        """
        Evict all expired entries.

        Returns:
            Number of evicted entries
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._last_sweep = now

        if expired:
            self.logger.debug(f"Cache sweep evicted {len(expired)} entries")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self._lookup(key) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
