"""Custom exception hierarchy for cmscache."""

from __future__ import annotations

from typing import Any


class CmsCacheError(Exception):
    """Base exception for all cmscache errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class FactoryError(CmsCacheError):
    """The caller-supplied cache factory failed to build a cache.

    The registry is left unchanged; the factory's own exception is chained
    as ``__cause__``.
    """

    def __init__(self, message: str = "", key: Any = None) -> None:
        super().__init__(message)
        self.key = key


class RegistryDisposedError(CmsCacheError):
    """A registry was used after ``dispose()``."""

    def __init__(self, message: str = "", registry: str = "") -> None:
        super().__init__(message or f"Cache registry '{registry}' has been disposed")
        self.registry = registry


class CacheDisposalError(CmsCacheError):
    """One or more caches raised while being disposed.

    Every other cache is still disposed before this is raised.
    """

    def __init__(
        self,
        message: str = "",
        errors: list[tuple[Any, BaseException]] | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or []


class CacheConfigError(CmsCacheError):
    """Invalid cache settings or an unknown backend."""

    def __init__(self, message: str = "", field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class CacheNotificationError(CmsCacheError):
    """An invalidation notification is missing what its kind requires."""
