"""
Tests for the in-memory navigation cache.

Run with: pytest tests/test_navigation_cache.py -v
"""

from admin_nav.navigation.cache import NavigationCache


class TestNavigationCache:

    def test_get_returns_stored_value(self, nav_cache):
        nav_cache.set("store-1", "tree", ["a"])
        assert nav_cache.get("store-1", "tree") == ["a"]

    def test_keys_include_query_shape(self, nav_cache):
        nav_cache.set("store-1", "tree", ["a"])
        assert nav_cache.get("store-1", "flat") is None

    def test_entry_expires_after_ttl(self, nav_cache, clock):
        nav_cache.set("store-1", "tree", ["a"])
        clock.advance(59)
        assert nav_cache.get("store-1", "tree") == ["a"]
        clock.advance(2)
        assert nav_cache.get("store-1", "tree") is None
        assert len(nav_cache) == 0

    def test_sweep_removes_expired_entries(self, nav_cache, clock):
        nav_cache.set("store-1", "tree", ["a"])
        nav_cache.set("store-2", "tree", ["b"])
        clock.advance(301)

        nav_cache.set("store-3", "tree", ["c"])

        assert len(nav_cache) == 1

    def test_clear_store_only_touches_that_store(self, nav_cache):
        nav_cache.set("store-1", "tree", ["a"])
        nav_cache.set("store-1", "flat", ["a"])
        nav_cache.set("store-2", "tree", ["b"])

        assert nav_cache.clear_store("store-1") == 2
        assert nav_cache.get("store-2", "tree") == ["b"]

    def test_clear_drops_everything(self, nav_cache):
        nav_cache.set("store-1", "tree", ["a"])
        nav_cache.set("store-2", "tree", ["b"])
        nav_cache.clear()
        assert len(nav_cache) == 0

    def test_zero_ttl_disables_cache(self, clock):
        cache = NavigationCache(ttl_seconds=0, clock=clock)
        cache.set("store-1", "tree", ["a"])

        assert cache.enabled is False
        assert cache.get("store-1", "tree") is None
        assert len(cache) == 0
