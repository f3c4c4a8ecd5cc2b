"""Thread-safe in-memory TTL cache."""

import threading
import time
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

from stockroom.models import CacheEntry

__all__ = ["TTLCache"]

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Key/value store whose entries expire ttl seconds after insertion.

    Expired entries are evicted lazily on read. Values are replaced
    wholesale by set(); they are never merged.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._store: Dict[Hashable, CacheEntry] = {}
        self._lock = threading.Lock()

    def _fresh_entry(self, key: Hashable) -> Optional[CacheEntry]:
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() - entry.inserted_at >= self.ttl:
            del self._store[key]
            return None
        return entry

    def get(self, key: Hashable) -> Optional[T]:
        with self._lock:
            entry = self._fresh_entry(key)
        return entry.value if entry else None

    def set(self, key: Hashable, value: T, inserted_at: Optional[float] = None) -> None:
        """Store value; inserted_at backdates the entry (e.g. to a file mtime)."""
        stamp = self._clock() if inserted_at is None else inserted_at
        with self._lock:
            self._store[key] = CacheEntry(value=value, inserted_at=stamp)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
