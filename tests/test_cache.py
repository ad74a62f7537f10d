"""
Tests for cache slots and the daily quota.
"""
import json
from unittest.mock import patch

from finance_hub.cache import DailyQuota, MemoryCache, RedisCache, build_cache
from tests.upstream import DownRedis


class DictRedis:
    """Minimal in-memory double for the redis client calls RedisCache makes."""

    def __init__(self):
        self.store = {}
        self.expiry = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex

    def delete(self, key):
        self.store.pop(key, None)


class TestMemoryCache:
    def test_fresh_until_ttl(self, clock):
        cache = MemoryCache(clock=clock)
        cache.set("k", [1, 2])

        clock.advance(59)
        assert cache.get_fresh("k", 60).value == [1, 2]

        clock.advance(1)  # age == ttl is already stale
        assert cache.get_fresh("k", 60) is None
        assert cache.get("k").value == [1, 2]

    def test_touch_refreshes_timestamp_only(self, clock):
        cache = MemoryCache(clock=clock)
        first = cache.set("k", "v")
        clock.advance(100)

        touched = cache.touch("k")

        assert touched.value == "v"
        assert touched.cached_at == first.cached_at + 100
        assert cache.get_fresh("k", 50) is not None

    def test_touch_missing_key(self, clock):
        assert MemoryCache(clock=clock).touch("nope") is None

    def test_delete(self, clock):
        cache = MemoryCache(clock=clock)
        cache.set("k", 1)
        cache.delete("k")
        cache.delete("k")
        assert cache.get("k") is None


class TestRedisCache:
    def test_roundtrip_and_prefix(self, clock):
        client = DictRedis()
        cache = RedisCache(client, prefix="t:", clock=clock)

        cache.set("news:latest", [{"title": "A"}])

        assert "t:news:latest" in client.store
        assert client.expiry["t:news:latest"] == cache.max_age
        entry = cache.get("news:latest")
        assert entry.value == [{"title": "A"}]
        assert entry.cached_at == clock()

    def test_freshness_uses_stored_timestamp(self, clock):
        cache = RedisCache(DictRedis(), clock=clock)
        cache.set("k", "v")
        clock.advance(301)
        assert cache.get_fresh("k", 300) is None
        assert cache.get_fresh("k", 400).value == "v"

    def test_unreadable_slot_is_dropped(self, clock):
        client = DictRedis()
        cache = RedisCache(client, prefix="", clock=clock)
        client.store["k"] = "not json"
        assert cache.get("k") is None
        assert "k" not in client.store

        client.store["k"] = json.dumps({"value": 1})
        assert cache.get("k") is None

    def test_outage_reads_as_miss_and_writes_are_skipped(self, clock):
        cache = RedisCache(DownRedis(), clock=clock)

        assert cache.get("k") is None
        assert cache.get_fresh("k", 60) is None
        assert cache.touch("k") is None
        entry = cache.set("k", [1])
        assert entry.value == [1]
        assert entry.cached_at == clock()
        cache.delete("k")


class TestBuildCache:
    def test_memory_by_default(self):
        assert isinstance(build_cache(""), MemoryCache)

    def test_redis_url(self):
        with patch("finance_hub.cache.get_redis") as mock_get:
            cache = build_cache("redis://localhost:6379/0")
        assert isinstance(cache, RedisCache)
        mock_get.assert_called_once_with("redis://localhost:6379/0")


class TestDailyQuota:
    def test_consume_until_exhausted(self, clock):
        quota = DailyQuota(limit=2, clock=clock)
        assert not quota.exhausted()
        quota.consume()
        quota.consume()
        assert quota.exhausted()
        assert quota.remaining() == 0

    def test_resets_on_new_day(self, clock):
        quota = DailyQuota(limit=1, clock=clock)
        quota.consume()
        assert quota.exhausted()

        clock.advance(24 * 60 * 60)

        assert not quota.exhausted()
        assert quota.count == 0
        assert quota.remaining() == 1

    def test_same_day_keeps_count(self, clock):
        quota = DailyQuota(limit=5, clock=clock)
        quota.consume()
        clock.advance(60 * 60)
        quota.roll()
        assert quota.count == 1
