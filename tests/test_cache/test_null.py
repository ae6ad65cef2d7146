"""Tests for the no-op policy cache."""

from cmscache.cache.interface import SupportsDispose
from cmscache.cache.null import NoAppCache


class TestNoAppCache:
    def test_always_misses(self):
        cache = NoAppCache()
        cache.insert("k1", lambda: "v")
        assert cache.get("k1") is None
        assert cache.search_by_key("k") == []

    def test_get_or_add_calls_factory_every_time(self):
        cache = NoAppCache()
        calls = []
        cache.get_or_add("k1", lambda: calls.append(1) or "v")
        result = cache.get_or_add("k1", lambda: calls.append(1) or "v")
        assert result == "v"
        assert len(calls) == 2

    def test_clears_report_nothing_removed(self):
        cache = NoAppCache()
        assert cache.remove("k1") is False
        assert cache.clear_by_key("k") == 0
        assert cache.clear_by_regex(".*") == 0
        assert cache.clear_of_type(str) == 0

    def test_is_not_disposable(self):
        assert not isinstance(NoAppCache(), SupportsDispose)

    def test_stats_counts_misses(self):
        cache = NoAppCache(name="off")
        cache.get("a")
        cache.get_or_add("b", lambda: 1)
        stats = cache.stats()
        assert stats.name == "off"
        assert stats.misses == 2
        assert len(cache) == 0
