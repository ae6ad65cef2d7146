"""Tests for the policy cache interface helpers."""

import pytest

from cmscache.cache.interface import AppPolicyCache, dispose_if_disposable
from cmscache.cache.memory import MemoryAppCache


class TestDisposeIfDisposable:
    def test_calls_dispose(self, tracking_factory):
        cache = tracking_factory("k")
        assert dispose_if_disposable(cache) is True
        assert cache.dispose_count == 1

    def test_ignores_plain_cache(self):
        assert dispose_if_disposable(MemoryAppCache()) is False

    def test_ignores_arbitrary_objects(self):
        assert dispose_if_disposable(object()) is False


class TestAppPolicyCache:
    def test_is_abstract(self):
        with pytest.raises(TypeError):
            AppPolicyCache()  # type: ignore[abstract]
