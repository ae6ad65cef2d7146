"""In-memory LRU policy cache with absolute or sliding expiry."""

from __future__ import annotations

import logging
import re
import sys
import threading
from collections import OrderedDict
from collections.abc import Callable, Iterable
from typing import Any

from cmscache.cache.interface import AppPolicyCache
from cmscache.cache.stats import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ENTRIES = 1000


class MemoryAppCache(AppPolicyCache):
    """Thread-safe in-memory cache with entry-count LRU eviction and TTL."""

    def __init__(
        self,
        max_entries: int = _DEFAULT_MAX_ENTRIES,
        default_ttl: float | None = None,
        name: str = "memory",
    ) -> None:
        self.name = name
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_entries = max_entries
        self._default_ttl = default_ttl or None
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired:
                self._store.pop(key, None)
                self._misses += 1
                return None
            entry.touch()
            # Move to end (most recently used)
            self._store.move_to_end(key)
            self._hits += 1
            return entry.value

    def get_or_add(
        self,
        key: str,
        factory: Callable[[], Any],
        timeout: float | None = None,
        is_sliding: bool = False,
    ) -> Any | None:
        value = self.get(key)
        if value is not None:
            return value

        # Built outside the lock so a slow factory never blocks other keys
        value = factory()
        if value is None:
            return None

        with self._lock:
            existing = self._store.get(key)
            if existing is not None and not existing.is_expired:
                # First insert wins
                self._store.move_to_end(key)
                return existing.value
            self._set(key, value, timeout, is_sliding)
        return value

    def insert(
        self,
        key: str,
        factory: Callable[[], Any],
        timeout: float | None = None,
        is_sliding: bool = False,
    ) -> None:
        value = factory()
        with self._lock:
            if value is None:
                self._store.pop(key, None)
                return
            self._set(key, value, timeout, is_sliding)

    def search_by_key(self, prefix: str) -> list[Any]:
        return self._search(lambda k: k.startswith(prefix))

    def search_by_regex(self, pattern: str) -> list[Any]:
        compiled = re.compile(pattern)
        return self._search(lambda k: compiled.search(k) is not None)

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            size = len(self._store)
            self._store.clear()
        logger.debug("Cleared %d entries from memory cache '%s'", size, self.name)

    def clear_by_key(self, prefix: str) -> int:
        return self._remove_where(lambda k, _: k.startswith(prefix))

    def clear_by_regex(self, pattern: str) -> int:
        compiled = re.compile(pattern)
        return self._remove_where(lambda k, _: compiled.search(k) is not None)

    def clear_of_type(self, value_type: type) -> int:
        return self._remove_where(lambda _, e: isinstance(e.value, value_type))

    def stats(self) -> CacheStats:
        with self._lock:
            size_bytes = sum(sys.getsizeof(e.value) for e in self._store.values())
            return CacheStats(
                name=self.name,
                entries=len(self._store),
                size_mb=size_bytes / (1024 * 1024),
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._store.get(key)  # type: ignore[arg-type]
            return entry is not None and not entry.is_expired

    def _set(self, key: str, value: Any, timeout: float | None, is_sliding: bool) -> None:
        self._store.pop(key, None)
        # Evict until there's room
        while len(self._store) >= self._max_entries and self._store:
            self._evict_oldest()
        self._store[key] = CacheEntry(
            key=key,
            value=value,
            ttl_seconds=self._resolve_ttl(timeout),
            sliding=is_sliding,
        )

    def _resolve_ttl(self, timeout: float | None) -> float | None:
        if timeout is None:
            return self._default_ttl
        return timeout or None

    def _evict_oldest(self) -> None:
        key, _ = self._store.popitem(last=False)
        self._evictions += 1
        logger.debug("Evicted key '%s' from memory cache '%s'", key, self.name)

    def _search(self, match: Callable[[str], bool]) -> list[Any]:
        with self._lock:
            self._purge_expired(k for k in list(self._store) if match(k))
            return [e.value for k, e in self._store.items() if match(k)]

    def _remove_where(self, match: Callable[[str, CacheEntry], bool]) -> int:
        with self._lock:
            to_remove = [k for k, e in self._store.items() if match(k, e)]
            for key in to_remove:
                del self._store[key]
        return len(to_remove)

    def _purge_expired(self, keys: Iterable[str]) -> None:
        for key in keys:
            if self._store[key].is_expired:
                del self._store[key]
