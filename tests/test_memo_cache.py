import pytest
import redis

from envimpact.services import memo_cache
from envimpact.services.memo_cache import CacheUnavailable, InMemoryCache, RedisCache, get_cache


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_miss_returns_none():
    cache = InMemoryCache()
    assert cache.get("SpeciesLion") is None


def test_set_then_get():
    cache = InMemoryCache()
    cache.set("SpeciesLion", "lion.html")
    assert cache.get("SpeciesLion") == "lion.html"


def test_entry_expires_after_ttl():
    clock = _Clock()
    cache = InMemoryCache(ttl=60, clock=clock)
    cache.set("SpeciesLion", "lion.html")
    clock.now += 59
    assert cache.get("SpeciesLion") == "lion.html"
    clock.now += 1
    assert cache.get("SpeciesLion") is None


def test_per_entry_ttl_overrides_default():
    clock = _Clock()
    cache = InMemoryCache(ttl=60, clock=clock)
    cache.set("SpeciesLion", "lion.html", ttl=5)
    clock.now += 5
    assert cache.get("SpeciesLion") is None


def test_expired_entry_is_replaced_by_fresh_write():
    clock = _Clock()
    cache = InMemoryCache(ttl=10, clock=clock)
    cache.set("SpeciesLion", "old.html")
    clock.now += 30
    cache.set("SpeciesLion", "new.html")
    assert cache.get("SpeciesLion") == "new.html"
    assert cache.entry("SpeciesLion").inserted_at == clock.now


def test_same_key_last_writer_wins():
    cache = InMemoryCache()
    cache.set("SpeciesLion", "first.html")
    cache.set("SpeciesLion", "second.html")
    assert cache.get("SpeciesLion") == "second.html"
    assert len(cache) == 1


def test_least_recently_used_entry_is_evicted():
    cache = InMemoryCache(max_entries=2)
    cache.set("a", "1")
    cache.set("b", "2")
    cache.get("a")
    cache.set("c", "3")
    assert cache.get("b") is None
    assert cache.get("a") == "1"
    assert cache.get("c") == "3"


class _FakeRedis:
    def __init__(self, fail=False):
        self.fail = fail
        self.data = {}
        self.expiry = {}

    def get(self, key):
        if self.fail:
            raise redis.ConnectionError("down")
        return self.data.get(key)

    def set(self, key, value, ex=None):
        if self.fail:
            raise redis.ConnectionError("down")
        self.data[key] = value
        self.expiry[key] = ex
        return True


def test_redis_cache_prefixes_keys_and_sets_ttl():
    client = _FakeRedis()
    cache = RedisCache(client, ttl=120)
    cache.set("SpeciesLion", "lion.html")
    assert client.data == {"envimpact:report:SpeciesLion": "lion.html"}
    assert client.expiry["envimpact:report:SpeciesLion"] == 120
    assert cache.get("SpeciesLion") == "lion.html"
    assert cache.get("ResourcesWater") is None


def test_redis_errors_surface_as_cache_unavailable():
    cache = RedisCache(_FakeRedis(fail=True))
    with pytest.raises(CacheUnavailable):
        cache.get("SpeciesLion")
    with pytest.raises(CacheUnavailable):
        cache.set("SpeciesLion", "lion.html")


def test_get_cache_defaults_to_memory(monkeypatch):
    monkeypatch.setattr(memo_cache, "_cache", None)
    monkeypatch.delenv("REDIS_URL", raising=False)
    cache = get_cache()
    assert isinstance(cache, InMemoryCache)
    assert get_cache() is cache


def test_get_cache_uses_redis_when_configured(monkeypatch):
    monkeypatch.setattr(memo_cache, "_cache", None)
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    assert isinstance(get_cache(), RedisCache)


def test_get_cache_falls_back_to_memory_on_bad_redis_url(monkeypatch):
    monkeypatch.setattr(memo_cache, "_cache", None)
    monkeypatch.setenv("REDIS_URL", "ftp://not-a-redis-host")
    assert isinstance(get_cache(), InMemoryCache)
