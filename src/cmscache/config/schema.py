"""Pydantic model for validated cache settings."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cmscache.config.defaults import (
    DEFAULT_DB_PATH,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_ENTRIES,
    DEFAULT_REGISTRY_SHARDS,
    DEFAULT_TTL_SECONDS,
)
from cmscache.config.hierarchy import load_config_hierarchy
from cmscache.errors.exceptions import CacheConfigError
from cmscache.types import CacheBackend

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class CacheSettings(BaseModel):
    """Resolved settings for building policy caches and registries."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    backend: CacheBackend = CacheBackend.MEMORY
    max_entries: int = Field(default=DEFAULT_MAX_ENTRIES, ge=1)
    default_ttl: float = Field(default=DEFAULT_TTL_SECONDS, ge=0)
    sliding: bool = False
    db_path: Path = Path(DEFAULT_DB_PATH)
    registry_shards: int = Field(default=DEFAULT_REGISTRY_SHARDS, ge=1, le=1024)
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("backend", mode="before")
    @classmethod
    def _lower_backend(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Any:
        return Path(value).expanduser() if isinstance(value, (str, Path)) else value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level '{value}'")
        return level

    @property
    def ttl_or_none(self) -> float | None:
        """Default TTL in seconds, or None when entries never expire."""
        return self.default_ttl or None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> CacheSettings:
        """Validate a merged config dict, raising CacheConfigError on failure."""
        try:
            return cls(**config)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or None
            raise CacheConfigError(
                f"Invalid cache settings: {first.get('msg', e)}", field=field
            ) from e


def load_settings(**runtime_overrides: Any) -> CacheSettings:
    """Resolve the config hierarchy and validate it into CacheSettings."""
    config = load_config_hierarchy(**runtime_overrides)
    settings = CacheSettings.from_config(config)
    logger.debug(
        "Loaded cache settings: backend=%s max_entries=%d shards=%d",
        settings.backend,
        settings.max_entries,
        settings.registry_shards,
    )
    return settings
