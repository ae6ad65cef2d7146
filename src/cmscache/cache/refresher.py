"""Cache refresher — turns invalidation notifications into targeted clears.

Invalidation never creates a region: a type whose cache was never requested
has nothing to clear, so entity evictions go through ``apply``.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from cmscache.cache.app_caches import AppCaches
from cmscache.cache.interface import AppPolicyCache
from cmscache.cache.keys import (
    all_entities_cache_key,
    entity_cache_key,
    entity_cache_prefix,
)
from cmscache.errors.exceptions import CacheNotificationError

logger = logging.getLogger(__name__)

_DEFAULT_HISTORY = 256


class RefreshKind(StrEnum):
    REFRESH_ENTITY = "refresh_entity"
    REMOVE_ENTITY = "remove_entity"
    REFRESH_TYPE = "refresh_type"
    REMOVE_TYPE = "remove_type"
    REFRESH_ALL = "refresh_all"


_TYPED_KINDS = {
    RefreshKind.REFRESH_ENTITY,
    RefreshKind.REMOVE_ENTITY,
    RefreshKind.REFRESH_TYPE,
    RefreshKind.REMOVE_TYPE,
}
_ENTITY_KINDS = {RefreshKind.REFRESH_ENTITY, RefreshKind.REMOVE_ENTITY}


class CacheNotification(BaseModel):
    """A request to invalidate cached data, e.g. after content is saved."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: RefreshKind
    entity_type: type | None = None
    entity_id: Any = None
    timestamp: float = Field(default_factory=time.time)


class CacheRefresher:
    """Applies invalidation notifications to a set of app caches."""

    def __init__(self, app_caches: AppCaches, history_size: int = _DEFAULT_HISTORY) -> None:
        self._app_caches = app_caches
        self._history: deque[CacheNotification] = deque(maxlen=history_size)

    @property
    def history(self) -> list[CacheNotification]:
        return list(self._history)

    def handle(self, notification: CacheNotification) -> None:
        """Dispatch a notification to the matching refresh operation."""
        kind = notification.kind
        entity_type = notification.entity_type
        if kind in _TYPED_KINDS and entity_type is None:
            raise CacheNotificationError(f"'{kind}' notification requires an entity_type")
        if kind in _ENTITY_KINDS and notification.entity_id is None:
            raise CacheNotificationError(f"'{kind}' notification requires an entity_id")

        if kind == RefreshKind.REFRESH_ENTITY:
            self.refresh_entity(entity_type, notification.entity_id)  # type: ignore[arg-type]
        elif kind == RefreshKind.REMOVE_ENTITY:
            self.remove_entity(entity_type, notification.entity_id)  # type: ignore[arg-type]
        elif kind == RefreshKind.REFRESH_TYPE:
            self.refresh_type(entity_type)  # type: ignore[arg-type]
        elif kind == RefreshKind.REMOVE_TYPE:
            self.remove_type(entity_type)  # type: ignore[arg-type]
        else:
            self.refresh_all()
        self._history.append(notification)

    def refresh_entity(self, entity_type: type, entity_id: Any) -> None:
        def evict(cache: AppPolicyCache) -> None:
            cache.remove(entity_cache_key(entity_type, entity_id))
            cache.remove(all_entities_cache_key(entity_type))

        if not self._app_caches.isolated_caches.apply(entity_type, evict):
            return
        logger.debug("Refreshed %s %r", entity_type.__name__, entity_id)

    def remove_entity(self, entity_type: type, entity_id: Any) -> None:
        self.refresh_entity(entity_type, entity_id)

    def refresh_type(self, entity_type: type) -> None:
        self._app_caches.isolated_caches.clear_cache(entity_type)
        self._app_caches.runtime_cache.clear_by_key(entity_cache_prefix(entity_type))
        logger.debug("Refreshed all %s entries", entity_type.__name__)

    def remove_type(self, entity_type: type) -> None:
        self._app_caches.isolated_caches.remove(entity_type)
        self._app_caches.runtime_cache.clear_by_key(entity_cache_prefix(entity_type))

    def refresh_all(self) -> None:
        self._app_caches.isolated_caches.clear_all_caches()
        self._app_caches.runtime_cache.clear()
        logger.info("Refreshed all caches")
