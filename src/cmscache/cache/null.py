"""No-op policy cache used when caching is disabled."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from cmscache.cache.interface import AppPolicyCache
from cmscache.cache.stats import CacheStats


class NoAppCache(AppPolicyCache):
    """Stores nothing; every lookup misses and every factory runs."""

    def __init__(self, name: str = "none") -> None:
        self.name = name
        self._misses = 0

    def get(self, key: str) -> Any | None:
        self._misses += 1
        return None

    def get_or_add(
        self,
        key: str,
        factory: Callable[[], Any],
        timeout: float | None = None,
        is_sliding: bool = False,
    ) -> Any | None:
        self._misses += 1
        return factory()

    def insert(
        self,
        key: str,
        factory: Callable[[], Any],
        timeout: float | None = None,
        is_sliding: bool = False,
    ) -> None:
        factory()

    def search_by_key(self, prefix: str) -> list[Any]:
        return []

    def search_by_regex(self, pattern: str) -> list[Any]:
        return []

    def remove(self, key: str) -> bool:
        return False

    def clear(self) -> None:
        pass

    def clear_by_key(self, prefix: str) -> int:
        return 0

    def clear_by_regex(self, pattern: str) -> int:
        return 0

    def clear_of_type(self, value_type: type) -> int:
        return 0

    def stats(self) -> CacheStats:
        return CacheStats(name=self.name, misses=self._misses)
