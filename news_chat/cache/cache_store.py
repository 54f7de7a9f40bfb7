"""
Cache Store

Best-effort key/value store with per-key TTL. Absence of a value is not an
error; expired values are dropped lazily on read.
"""

import copy
import time
import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from ..errors import CacheError

logger = logging.getLogger(__name__)


class CacheStore:
    """Contract consumed by the query cache."""

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryCacheStore(CacheStore):
    """
    In-process TTL cache.

    Values are deep-copied on write and read so callers never share mutable
    state with the cache. The clock is injectable for tests.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        clock: Optional[Callable[[], float]] = None
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries
        self._clock = clock or time.time
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        if ttl is not None and ttl <= 0:
            raise CacheError(f"ttl must be positive, got {ttl}")
        try:
            stored = copy.deepcopy(value)
        except Exception as e:
            raise CacheError(f"Value for {key} cannot be cached: {e}")

        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._entries.pop(key, None)
            if len(self._entries) >= self.max_entries:
                self._evict()
            self._entries[key] = (stored, expires_at)

    def _evict(self) -> None:
        """Drop expired entries, then the oldest ones, until there is room."""
        now = self._clock()
        expired = [k for k, (_, exp) in self._entries.items() if exp is not None and now >= exp]
        for key in expired:
            del self._entries[key]
        while len(self._entries) >= self.max_entries:
            self._entries.pop(next(iter(self._entries)))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Cleared cache store")

    def __len__(self) -> int:
        return len(self._entries)
