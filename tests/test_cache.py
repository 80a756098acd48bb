"""
Tests for the results cache
"""
import redis

from certquiz.utils.cache import CacheService


class RecordingRedis:
    def __init__(self):
        self.values = {}
        self.ttls = {}

    def ping(self):
        return True

    def get(self, key):
        return self.values.get(key)

    def setex(self, key, ttl, value):
        self.values[key] = value
        self.ttls[key] = ttl


class UnreachableRedis:
    def ping(self):
        raise redis.ConnectionError("connection refused")


class TestCacheService:
    def test_disabled_cache_always_misses(self):
        cache = CacheService(redis_url="redis://localhost:6379/0", enabled=False)

        assert cache.redis_client is None
        assert cache.set("key", {"a": 1}) is False
        assert cache.get("key") is None

    def test_unreachable_redis_disables_caching(self, monkeypatch):
        monkeypatch.setattr(redis, "from_url", lambda *args, **kwargs: UnreachableRedis())

        cache = CacheService(redis_url="redis://localhost:6379/0")

        assert cache.redis_client is None
        assert cache.get(CacheService.results_key("s1")) is None

    def test_stores_json_with_default_ttl(self, monkeypatch):
        client = RecordingRedis()
        monkeypatch.setattr(redis, "from_url", lambda *args, **kwargs: client)
        cache = CacheService(redis_url="redis://localhost:6379/0", default_ttl=120)
        key = CacheService.results_key("s1")

        assert cache.set(key, {"score": {"percentage": 33}}) is True

        assert key == "quiz:results:s1"
        assert client.ttls[key] == 120
        assert cache.get(key) == {"score": {"percentage": 33}}
        assert cache.get(CacheService.results_key("s2")) is None

    def test_unserializable_value_is_not_cached(self, monkeypatch):
        client = RecordingRedis()
        monkeypatch.setattr(redis, "from_url", lambda *args, **kwargs: client)
        cache = CacheService(redis_url="redis://localhost:6379/0")

        assert cache.set("key", {"when": object()}) is False
        assert client.values == {}
