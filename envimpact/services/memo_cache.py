"""Memoization cache for finished report results.

Two backends share the same small interface: an in-process store used by
default and a redis store selected with ``REDIS_URL``. Entries are written
once per successful dispatch and are never mutated afterwards; an expired
entry is ignored on read and replaced by the next write for its key.
"""

import logging
import os
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

import redis

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = int(os.getenv("MEMO_CACHE_TTL_SECONDS", "3600"))
MAX_ENTRIES = int(os.getenv("MEMO_CACHE_MAX_ENTRIES", "1024"))
REDIS_KEY_PREFIX = "envimpact:report:"


class CacheUnavailable(RuntimeError):
    """Raised when the backing cache store cannot be reached."""


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: str
    inserted_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl


class MemoCache:
    """Interface implemented by every cache backend."""

    ttl: float = DEFAULT_TTL_SECONDS

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        raise NotImplementedError


class InMemoryCache(MemoCache):
    """Process-local cache with time-based expiry and an LRU size bound.

    The lock only guards dictionary bookkeeping, so callers working on
    different keys never wait on each other for longer than a dict update.
    Concurrent writes to the same key are last-writer-wins.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        max_entries: int = MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        entry = CacheEntry(
            key=key,
            value=value,
            inserted_at=self._clock(),
            ttl=self.ttl if ttl is None else ttl,
        )
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("report_cache_evicted", extra={"cache_key": evicted})

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Return the raw entry for ``key`` (expired or not)."""

        with self._lock:
            return self._entries.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisCache(MemoCache):
    """Cache backed by redis; expiry is delegated to redis key TTLs."""

    def __init__(
        self,
        client: "redis.Redis",
        ttl: float = DEFAULT_TTL_SECONDS,
        prefix: str = REDIS_KEY_PREFIX,
    ) -> None:
        self.ttl = ttl
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisCache":
        return cls(redis.Redis.from_url(url, decode_responses=True), **kwargs)

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._client.get(self._prefix + key)
        except redis.RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc
        return value or None

    def set(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        seconds = max(1, int(self.ttl if ttl is None else ttl))
        try:
            self._client.set(self._prefix + key, value, ex=seconds)
        except redis.RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc


_cache: Optional[MemoCache] = None
_cache_lock = threading.Lock()


def get_cache() -> MemoCache:
    """Return the process-wide cache, building it on first use."""

    global _cache
    with _cache_lock:
        if _cache is not None:
            return _cache
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            try:
                _cache = RedisCache.from_url(redis_url)
                logger.info("report_cache_backend", extra={"backend": "redis"})
            except (redis.RedisError, ValueError):
                logger.exception("report_cache_redis_init_failed", extra={"redis_url": redis_url})
                _cache = InMemoryCache()
        else:
            _cache = InMemoryCache()
            logger.info("report_cache_backend", extra={"backend": "memory"})
        return _cache
