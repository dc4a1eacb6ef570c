"""
In-process read-through caches for index, search and detail views.

Entries expire on whichever comes first: ``ttl`` seconds after insertion or
``idle`` seconds after the last read. The table is bounded and evicts the
least recently used entry. Cached values are shared snapshots; callers must
not mutate them. Mutations elsewhere never purge these caches.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from config.config_loader import ConfigLoader
from services.models import SearchQuery
from utils.logging import get_logger

logger = get_logger(__name__)

V = TypeVar("V")

# (ttl_seconds, idle_seconds, max_entries)
DEFAULT_CACHE_SETTINGS = {
    "index": (60, 30, 16),
    "search": (75, 45, 1000),
    "detail": (60, 30, 5000),
}


@dataclass
class _Entry(Generic[V]):
    value: V
    expires_at: float
    last_access: float


class TTLCache(Generic[V]):
    def __init__(self, name: str, ttl: float, idle: float, max_entries: int) -> None:
        self.name = name
        self.ttl = ttl
        self.idle = idle
        self.max_entries = max_entries
        self._entries: OrderedDict[Hashable, _Entry[V]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_config(cls, name: str) -> TTLCache:
        ttl, idle, max_entries = DEFAULT_CACHE_SETTINGS[name]
        return cls(
            name,
            ttl=float(ConfigLoader.get_nested(f"cache.{name}.ttl_seconds", ttl)),
            idle=float(ConfigLoader.get_nested(f"cache.{name}.idle_seconds", idle)),
            max_entries=int(ConfigLoader.get_nested(f"cache.{name}.max_entries", max_entries)),
        )

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> V | None:
        """Return the cached value if it is still live."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        now = time.monotonic()
        if entry.expires_at <= now or entry.last_access + self.idle <= now:
            self._entries.pop(key, None)
            return None

        # Refresh LRU order
        entry.last_access = now
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: Hashable, value: V) -> None:
        """Insert or replace an entry, enforcing the size bound."""
        now = time.monotonic()
        self._entries[key] = _Entry(value=value, expires_at=now + self.ttl, last_access=now)
        self._entries.move_to_end(key)

        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def get_or_load(self, key: Hashable, loader: Callable[[], Awaitable[V]]) -> V:
        """
        Return the cached value, computing and inserting it on a miss.

        Concurrent misses for the same key each run ``loader``; the last
        insert wins.
        """
        cached = self.get(key)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        value = await loader()
        self.set(key, value)
        logger.debug("Cache populated", extra={"cache": self.name, "size": len(self._entries)})
        return value

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
        }


def search_cache_key(query: SearchQuery) -> tuple[str, int, int]:
    """Collapse whitespace and case so equivalent queries share one entry."""
    return (" ".join(query.q.split()).lower(), query.gc_from, query.gc_to)


class CacheService:
    """The caches shared by every request, owned by the application context."""

    def __init__(
        self,
        index: TTLCache | None = None,
        search: TTLCache | None = None,
        detail: TTLCache | None = None,
    ) -> None:
        self.index = index or TTLCache.from_config("index")
        self.search = search or TTLCache.from_config("search")
        self.detail = detail or TTLCache.from_config("detail")

    def stats(self) -> dict[str, dict[str, Any]]:
        return {
            "index": self.index.stats(),
            "search": self.search.stats(),
            "detail": self.detail.stats(),
        }
