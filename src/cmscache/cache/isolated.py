"""Isolated caches — one policy cache per entity type."""

from __future__ import annotations

from collections.abc import Callable

from cmscache.cache.interface import AppPolicyCache
from cmscache.cache.memory import MemoryAppCache
from cmscache.cache.registry import PolicedCacheRegistry
from cmscache.config.defaults import DEFAULT_REGISTRY_SHARDS
from cmscache.types import Attempt


class IsolatedCaches(PolicedCacheRegistry[type]):
    """Registry keyed by entity type, so each repository gets its own region.

    Clearing the cache of one type never touches another type's entries.
    """

    def __init__(
        self,
        cache_factory: Callable[[type], AppPolicyCache] | None = None,
        shards: int = DEFAULT_REGISTRY_SHARDS,
    ) -> None:
        super().__init__(
            cache_factory or _default_factory,
            shards=shards,
            name="IsolatedCaches",
        )

    def get_cache(self, entity_type: type) -> Attempt[AppPolicyCache]:
        """Cache for ``entity_type`` if it was already created."""
        return self.try_get(entity_type)


def _default_factory(entity_type: type) -> AppPolicyCache:
    return MemoryAppCache(name=entity_type.__name__)
