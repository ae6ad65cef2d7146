"""Cache key and region naming helpers."""

from __future__ import annotations

from typing import Any

_ENTITY_PREFIX = "repo"
_ALL_SUFFIX = "*all"


def type_name(entity_type: type) -> str:
    """Fully qualified name used to identify a type in keys and regions."""
    return f"{entity_type.__module__}.{entity_type.__qualname__}"


def region_name(key: Any) -> str:
    """Name of the backing-store region for a registry key."""
    if isinstance(key, type):
        return type_name(key)
    return str(key)


def entity_cache_prefix(entity_type: type) -> str:
    """Prefix shared by every key cached for ``entity_type``."""
    return f"{_ENTITY_PREFIX}:{type_name(entity_type)}:"


def entity_cache_key(entity_type: type, entity_id: Any) -> str:
    """Key of a single entity, e.g. ``repo:myapp.models.Content:42``."""
    return f"{entity_cache_prefix(entity_type)}{entity_id}"


def all_entities_cache_key(entity_type: type) -> str:
    """Key under which the full entity list of a type is cached."""
    return f"{entity_cache_prefix(entity_type)}{_ALL_SUFFIX}"
