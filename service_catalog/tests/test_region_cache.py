"""
Unit tests for the cache region manager.
"""

from unittest.mock import MagicMock

import pytest

from service_catalog.app.caching.region_cache import (
    PRODUCT_STATS,
    PRODUCTS,
    USERS,
    CacheRegionManager,
    key_for_id,
    key_for_name,
)
from service_catalog.app.domain.models import RecordKind
from shared.metrics import MetricsCollector


class TestCacheRegionManager:
    """Test cases for CacheRegionManager."""

    @pytest.fixture
    def cache(self):
        return CacheRegionManager()

    def test_miss_then_hit_calls_loader_once(self, cache):
        loader = MagicMock(return_value=["a", "b"])

        assert cache.read_through(PRODUCTS, "all", loader) == ["a", "b"]
        assert cache.read_through(PRODUCTS, "all", loader) == ["a", "b"]
        loader.assert_called_once_with()

    def test_absent_result_is_cached(self, cache):
        loader = MagicMock(return_value=None)

        assert cache.read_through(PRODUCTS, key_for_id(9), loader) is None
        assert cache.read_through(PRODUCTS, key_for_id(9), loader) is None
        assert loader.call_count == 1
        assert cache.contains(PRODUCTS, key_for_id(9))

    def test_callers_get_independent_copies(self, cache):
        first = cache.read_through(PRODUCTS, "all", lambda: [{"name": "A"}])
        first[0]["name"] = "mutated"
        first.append({"name": "B"})

        assert cache.read_through(PRODUCTS, "all", lambda: []) == [{"name": "A"}]

    def test_invalidate_forces_reload(self, cache):
        loader = MagicMock(side_effect=[1, 2])

        cache.read_through(PRODUCTS, "count", loader)
        cache.invalidate(PRODUCTS)

        assert cache.read_through(PRODUCTS, "count", loader) == 2

    def test_invalidate_leaves_other_regions(self, cache):
        cache.read_through(PRODUCTS, "all", lambda: [])
        cache.read_through(USERS, "all", lambda: [])

        cache.invalidate(PRODUCTS)

        assert not cache.contains(PRODUCTS, "all")
        assert cache.contains(USERS, "all")

    def test_invalidate_kind_drops_aggregates(self, cache):
        cache.read_through(PRODUCTS, key_for_name("lap"), lambda: [])
        cache.read_through(PRODUCT_STATS, "total_value", lambda: 10)
        cache.read_through(USERS, "all", lambda: [])

        cache.invalidate_kind(RecordKind.PRODUCT)

        assert not cache.contains(PRODUCTS, key_for_name("lap"))
        assert not cache.contains(PRODUCT_STATS, "total_value")
        assert cache.contains(USERS, "all")

    def test_load_racing_an_invalidation_is_not_stored(self, cache):
        def stale_loader():
            # A write lands while this load is in flight
            cache.invalidate(PRODUCTS)
            return "stale"

        assert cache.read_through(PRODUCTS, "all", stale_loader) == "stale"
        assert not cache.contains(PRODUCTS, "all")
        assert cache.read_through(PRODUCTS, "all", lambda: "fresh") == "fresh"

    def test_loader_failure_is_not_cached(self, cache):
        def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.read_through(PRODUCTS, "all", failing)
        assert not cache.contains(PRODUCTS, "all")

    def test_clear_all_always_succeeds(self, cache):
        assert cache.clear_all() is True

        cache.read_through(PRODUCTS, "all", lambda: [])
        cache.read_through(USERS, key_for_id(1), lambda: None)

        assert cache.clear_all() is True
        assert cache.stats()["regions"] == {}

    def test_stats_and_metrics(self):
        metrics = MetricsCollector("catalog")
        cache = CacheRegionManager(metrics=metrics)

        cache.read_through(PRODUCTS, "all", lambda: [])
        cache.read_through(PRODUCTS, "all", lambda: [])
        cache.invalidate([PRODUCTS, PRODUCT_STATS])

        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["invalidations"] == 2
        assert metrics.get_sample_value("cache_hits_total", {"region": PRODUCTS}) == 1
        assert metrics.get_sample_value("cache_misses_total", {"region": PRODUCTS}) == 1
        assert metrics.get_sample_value("cache_invalidations_total", {"region": PRODUCT_STATS}) == 1
