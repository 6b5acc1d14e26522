"""
Tests for the render cache.
"""

from __future__ import annotations

from kickwatch.services.render_cache import RenderCache


class TestRenderCache:
    """Test TTL expiry and LRU eviction."""

    def test_put_then_get_returns_value(self, fake_clock) -> None:
        cache = RenderCache(clock=fake_clock)
        cache.put("k", "v")

        assert cache.get("k") == "v"
        assert "k" in cache
        assert len(cache) == 1

    def test_missing_key_returns_none(self) -> None:
        assert RenderCache().get("missing") is None

    def test_entry_expires_after_ttl(self, fake_clock) -> None:
        cache = RenderCache(ttl=600, clock=fake_clock)
        cache.put("k", "v")

        fake_clock.advance(599)
        assert cache.get("k") == "v"

        fake_clock.advance(2)
        assert cache.get("k") is None

    def test_evict_count_rounds_up(self) -> None:
        assert RenderCache(capacity=50).evict_count == 10
        assert RenderCache(capacity=3).evict_count == 1
        assert RenderCache(capacity=1).evict_count == 1
        assert RenderCache(capacity=11).evict_count == 3

    def test_full_cache_evicts_least_recently_used(self, fake_clock) -> None:
        cache = RenderCache(capacity=50, clock=fake_clock)
        for i in range(50):
            cache.put(f"k{i}", f"v{i}")
            fake_clock.advance(1)

        # Touch the oldest entry so it becomes most recently used.
        assert cache.get("k0") == "v0"
        fake_clock.advance(1)

        cache.put("new", "value")

        assert len(cache) == 41
        assert "k0" in cache
        assert "new" in cache
        for i in range(1, 11):
            assert f"k{i}" not in cache
        assert "k11" in cache

    def test_size_never_exceeds_capacity(self, fake_clock) -> None:
        cache = RenderCache(capacity=5, clock=fake_clock)
        for i in range(100):
            cache.put(f"k{i}", "v")
            fake_clock.advance(1)
            assert len(cache) <= 5

    def test_clear(self) -> None:
        cache = RenderCache()
        cache.put("k", "v")
        cache.clear()
        assert len(cache) == 0
