"""Shared types for cmscache."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")

# ── Enums ──


class CacheBackend(StrEnum):
    MEMORY = "memory"
    SQLITE = "sqlite"
    NONE = "none"


# ── Results ──


@dataclass(frozen=True)
class Attempt(Generic[T]):
    """Outcome of an operation that may or may not produce a value.

    A failed attempt is a normal result, not an error: callers branch on
    ``success`` (or truthiness) instead of catching exceptions.
    """

    success: bool
    result: T | None = None

    @classmethod
    def succeed(cls, result: T) -> Attempt[T]:
        return cls(success=True, result=result)

    @classmethod
    def fail(cls) -> Attempt[T]:
        return cls(success=False)

    def __bool__(self) -> bool:
        return self.success

    def value_or(self, default: T) -> T:
        return self.result if self.success and self.result is not None else default
