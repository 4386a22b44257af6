"""Tests for the expiring cache."""

import asyncio
import threading

import pytest

from crypto_chart_api.data.cache import (
    ExpiringCache,
    CacheConfig,
    cache_key_for_prices,
    cache_key_for_stats
)


class TestCacheConfig:
    """Test CacheConfig class."""

    def test_cache_config_defaults(self):
        """Test default cache configuration values."""
        config = CacheConfig()

        assert config.default_ttl == 300
        assert config.cleanup_interval == 600
        assert config.enable_sweep is True


class TestExpiringCache:
    """Test ExpiringCache functionality."""

    def test_set_and_get(self, cache):
        """Test basic set and get operations."""
        cache.set("key", [1.0, 2.0], ttl=60)

        assert cache.get("key") == ([1.0, 2.0], True)

    def test_get_missing_key(self, cache):
        """Test lookup of a key that was never set."""
        assert cache.get("missing") == (None, False)

    def test_entry_live_until_expiry(self, cache, clock):
        """Test that an entry is served right up to its expiry time."""
        cache.set("key", "value", ttl=60)

        clock.advance(59.9)
        assert cache.get("key") == ("value", True)

    def test_entry_expires_at_ttl(self, cache, clock):
        """Test that an entry is not served once its TTL has elapsed."""
        cache.set("key", "value", ttl=60)

        clock.advance(60)
        assert cache.get("key") == (None, False)

    def test_expired_get_evicts_entry(self, cache, clock):
        """Test lazy eviction on read."""
        cache.set("key", "value", ttl=1)
        assert len(cache) == 1

        clock.advance(2)
        cache.get("key")

        assert len(cache) == 0
        assert cache.get_stats()['expirations'] == 1

    def test_default_ttl_used(self, clock):
        """Test that set without ttl uses the configured default."""
        cache = ExpiringCache(CacheConfig(default_ttl=10, enable_sweep=False), clock=clock)
        cache.set("key", "value")

        clock.advance(9)
        assert cache.get("key")[1] is True
        clock.advance(1)
        assert cache.get("key")[1] is False

    def test_set_overwrites_value_and_ttl(self, cache, clock):
        """Test that a second set fully replaces value and expiry."""
        cache.set("key", "v1", ttl=10)
        cache.set("key", "v2", ttl=100)

        clock.advance(50)
        assert cache.get("key") == ("v2", True)

        cache.set("key", "v3", ttl=1)
        clock.advance(2)
        assert cache.get("key") == (None, False)

    def test_cached_none_is_found(self, cache):
        """Test that a stored None is distinguishable from a miss."""
        cache.set("key", None, ttl=10)

        assert cache.get("key") == (None, True)

    def test_delete(self, cache):
        """Test cache delete operation."""
        cache.set("key", "value")

        assert cache.delete("key") is True
        assert cache.get("key") == (None, False)
        assert cache.delete("key") is False

    def test_clear(self, cache):
        """Test cache clear operation."""
        cache.set("key1", "value1")
        cache.set("key2", "value2")

        assert cache.clear() == 2
        assert len(cache) == 0

    def test_sweep_expired(self, cache, clock):
        """Test eager removal of expired entries."""
        cache.set("short", "value", ttl=5)
        cache.set("long", "value", ttl=500)

        clock.advance(10)
        removed = cache.sweep_expired()

        assert removed == 1
        assert len(cache) == 1
        assert cache.get("long") == ("value", True)

    def test_stats(self, cache):
        """Test hit/miss accounting."""
        cache.set("key", "value")
        cache.get("key")
        cache.get("key")
        cache.get("other")

        stats = cache.get_stats()

        assert stats['hits'] == 2
        assert stats['misses'] == 1
        assert stats['hit_rate'] == 66.67
        assert stats['size'] == 1
        assert stats['default_ttl'] == 300

    def test_concurrent_readers_and_writers(self):
        """Test that threads never observe a torn or expired value."""
        cache = ExpiringCache(CacheConfig(enable_sweep=False))
        errors = []

        def writer(n):
            for i in range(200):
                cache.set(f"key{i % 10}", (n, i), ttl=60)

        def reader():
            for i in range(200):
                value, found = cache.get(f"key{i % 10}")
                if found and not (isinstance(value, tuple) and len(value) == 2):
                    errors.append(value)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(cache) == 10


class TestCacheLifecycle:
    """Test the background sweep task."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """Test cache start and stop."""
        cache = ExpiringCache(CacheConfig(cleanup_interval=60))

        await cache.start()
        assert cache._running
        assert cache._cleanup_task is not None

        await cache.stop()
        assert not cache._running
        assert cache._cleanup_task is None

        # Should be able to start/stop multiple times
        await cache.start()
        await cache.stop()

    @pytest.mark.asyncio
    async def test_sweep_disabled(self):
        """Test that no task is spawned when the sweep is disabled."""
        cache = ExpiringCache(CacheConfig(enable_sweep=False))

        await cache.start()
        assert cache._cleanup_task is None
        await cache.stop()

    @pytest.mark.asyncio
    async def test_background_sweep_removes_expired(self, clock):
        """Test that the sweep loop evicts entries nobody reads."""
        cache = ExpiringCache(CacheConfig(cleanup_interval=0.01), clock=clock)
        cache.set("key", "value", ttl=1)
        clock.advance(5)

        await cache.start()
        for _ in range(50):
            if len(cache) == 0:
                break
            await asyncio.sleep(0.01)
        await cache.stop()

        assert len(cache) == 0


class TestCacheKeys:
    """Test cache key helpers."""

    def test_price_key(self):
        assert cache_key_for_prices("bitcoin", "7d") == "prices:bitcoin:7d"

    def test_stats_key(self):
        assert cache_key_for_stats("bitcoin") == "stats:bitcoin"
