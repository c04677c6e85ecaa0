from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from loguru import logger

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_MAX_ENTRIES = 100
EVICTION_FRACTION = 0.2


@dataclass(slots=True)
class CacheEntry:
    key: str
    content: str
    created_at: float
    hit_count: int = 0


@dataclass(slots=True)
class CacheStats:
    size: int
    total_hits: int
    average_age_minutes: float


class PageCache:
    """Process-lifetime page cache with TTL expiry and oldest-first eviction.

    Eviction is by creation time, not access time: when a write finds the cache
    full, the oldest 20% of entries (at least one) are dropped first.
    Expired entries are removed lazily on ``get``.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = max(float(ttl_seconds), 0.0)
        self.max_entries = max(int(max_entries), 1)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at > self.ttl_seconds:
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
                return None
            entry.hit_count += 1
            return entry.content

    def set(self, key: str, content: str) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict_oldest()
            self._entries[key] = CacheEntry(key=key, content=content, created_at=self._clock())

    def stats(self) -> CacheStats:
        with self._lock:
            now = self._clock()
            entries = list(self._entries.values())
        if not entries:
            return CacheStats(size=0, total_hits=0, average_age_minutes=0.0)
        total_age = sum(now - entry.created_at for entry in entries)
        return CacheStats(
            size=len(entries),
            total_hits=sum(entry.hit_count for entry in entries),
            average_age_minutes=total_age / len(entries) / 60.0,
        )

    def _evict_oldest(self) -> None:
        # caller holds the lock
        count = max(1, math.floor(self.max_entries * EVICTION_FRACTION))
        oldest = sorted(self._entries.values(), key=lambda entry: entry.created_at)[:count]
        for entry in oldest:
            del self._entries[entry.key]
        logger.debug(f"Cache full ({self.max_entries}); evicted {len(oldest)} oldest entries")
