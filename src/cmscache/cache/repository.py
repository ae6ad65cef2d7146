"""Read-through cache policy for entity repositories."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from cmscache.cache.interface import AppPolicyCache
from cmscache.cache.isolated import IsolatedCaches
from cmscache.cache.keys import all_entities_cache_key, entity_cache_key

logger = logging.getLogger(__name__)

TEntity = TypeVar("TEntity")


def _default_id(entity: Any) -> Any:
    return entity.id


class RepositoryCachePolicy(Generic[TEntity]):
    """Caches one entity type in its own isolated region.

    The region is looked up through the registry on every call and never
    held, so a removed or swept region is transparently recreated.
    """

    def __init__(
        self,
        isolated_caches: IsolatedCaches,
        entity_type: type[TEntity],
        id_getter: Callable[[TEntity], Any] = _default_id,
        timeout: float | None = None,
    ) -> None:
        self._isolated_caches = isolated_caches
        self._entity_type = entity_type
        self._id_getter = id_getter
        self._timeout = timeout

    @property
    def cache(self) -> AppPolicyCache:
        return self._isolated_caches.get_or_create(self._entity_type)

    def get(
        self,
        entity_id: Any,
        perform_get: Callable[[Any], TEntity | None],
    ) -> TEntity | None:
        key = entity_cache_key(self._entity_type, entity_id)
        return self.cache.get_or_add(key, lambda: perform_get(entity_id), timeout=self._timeout)

    def get_all(self, perform_get_all: Callable[[], Iterable[TEntity]]) -> list[TEntity]:
        cache = self.cache
        all_key = all_entities_cache_key(self._entity_type)
        cached = cache.get(all_key)
        if cached is not None:
            return list(cached)

        entities = list(perform_get_all())
        for entity in entities:
            key = entity_cache_key(self._entity_type, self._id_getter(entity))
            cache.insert(key, lambda e=entity: e, timeout=self._timeout)
        cache.insert(all_key, lambda: entities, timeout=self._timeout)
        logger.debug("Cached %d %s entities", len(entities), self._entity_type.__name__)
        return list(entities)

    def exists(self, entity_id: Any, perform_exists: Callable[[Any], bool]) -> bool:
        key = entity_cache_key(self._entity_type, entity_id)
        if self.cache.get(key) is not None:
            return True
        return perform_exists(entity_id)

    def saved(self, entity: TEntity) -> None:
        """Refresh a saved entity and drop the cached full list."""
        cache = self.cache
        key = entity_cache_key(self._entity_type, self._id_getter(entity))
        cache.insert(key, lambda: entity, timeout=self._timeout)
        cache.remove(all_entities_cache_key(self._entity_type))

    def deleted(self, entity: TEntity) -> None:
        """Drop a deleted entity and the cached full list."""
        cache = self.cache
        cache.remove(entity_cache_key(self._entity_type, self._id_getter(entity)))
        cache.remove(all_entities_cache_key(self._entity_type))
