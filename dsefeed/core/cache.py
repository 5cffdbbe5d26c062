"""In-memory TTL cache with an injectable clock.

Every scraped resource (snapshot, directory, fundamentals, history, news) is
cached through one of these; each instance owns its own key space and TTL.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")

Clock = Callable[[], int]


def system_clock() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    fetched_at: int


class TTLCache(Generic[T]):
    """
    Process-local key/value cache.

    ``get`` returns whatever entry is stored, fresh or not, so callers can
    fall back to a stale value when a refresh fails. Freshness is decided with
    :meth:`is_fresh` / :meth:`get_fresh`. No locking: concurrent misses may
    both fetch, and the last ``put`` wins.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        max_stale_seconds: Optional[float] = None,
        clock: Optional[Clock] = None,
        name: str = "cache",
    ) -> None:
        self.ttl_ms = int(ttl_seconds * 1000)
        self.max_stale_ms = int(max_stale_seconds * 1000) if max_stale_seconds is not None else None
        self.clock = clock or system_clock
        self.name = name
        self._entries: Dict[Hashable, CacheEntry[T]] = {}

    def get(self, key: Hashable) -> Optional[CacheEntry[T]]:
        return self._entries.get(key)

    def put(self, key: Hashable, value: T, fetched_at: Optional[int] = None) -> CacheEntry[T]:
        entry = CacheEntry(data=value, fetched_at=self.clock() if fetched_at is None else fetched_at)
        self._entries[key] = entry
        return entry

    def age_ms(self, entry: CacheEntry[T]) -> int:
        return self.clock() - entry.fetched_at

    def is_fresh(self, entry: CacheEntry[T]) -> bool:
        return self.age_ms(entry) < self.ttl_ms

    def get_fresh(self, key: Hashable) -> Optional[CacheEntry[T]]:
        entry = self.get(key)
        if entry is not None and self.is_fresh(entry):
            return entry
        return None

    def get_stale(self, key: Hashable) -> Optional[CacheEntry[T]]:
        """Entry usable as a fallback after a failed refresh, bounded by max staleness."""
        entry = self.get(key)
        if entry is None or self.max_stale_ms is None:
            return None
        if self.age_ms(entry) <= self.max_stale_ms:
            return entry
        return None

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries
