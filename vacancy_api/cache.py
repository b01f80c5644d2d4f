"""
Vacancy API - Cache store.

A small key/value interface with TTL, shared by the result cache in the
vacancy service and by the rate limiter:

    get(key) -> value or None
    set(key, value, ttl) -> bool
    delete(key)

Values must be JSON-compatible. Both backends store the JSON encoding, so a
read returns a fresh, equal copy of what was written.

Backends raise CacheError when the store cannot be reached; each caller
decides how to degrade. Neither backend offers atomic read-modify-write.
"""
import json
import logging
import math
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis
from redis.exceptions import RedisError

logger = logging.getLogger("vacancy_api.cache")


class CacheError(Exception):
    """The cache backend is unreachable or rejected the operation."""
    pass


def build_key(*parts: Any) -> str:
    """Render a structured key like ("list", 1, "salary", "asc") as "list:1:salary:asc"."""
    return ":".join(str(part) for part in parts)


class CacheStore:
    """Interface implemented by every cache backend."""

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: float) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryCache(CacheStore):
    """
    Per-process cache backed by a dict.

    Expired entries are dropped lazily on access. The lock only protects the
    dict itself; callers doing get-then-set still race with each other.

    Args:
        clock: Returns the current time in seconds. Tests inject a fake clock.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            encoded, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
        return json.loads(encoded)

    def set(self, key: str, value: Any, ttl: float) -> bool:
        encoded = json.dumps(value)
        with self._lock:
            self._entries[key] = (encoded, self._clock() + ttl)
        return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        """Number of live entries; expired ones are purged first."""
        with self._lock:
            now = self._clock()
            for key in [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]:
                del self._entries[key]
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class RedisCache(CacheStore):
    """
    Cache shared between processes through Redis.

    Keys are namespaced with `prefix`. TTLs are rounded up to whole seconds
    since Redis expiry (EX) is integral.
    """

    def __init__(self, client: "redis.Redis", prefix: str = ""):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "", socket_timeout: float = 2.0) -> "RedisCache":
        client = redis.Redis.from_url(
            url,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
            decode_responses=True,
        )
        logger.info(f"Redis cache configured: {url}")
        return cls(client, prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(self._key(key))
        except RedisError as e:
            raise CacheError(f"Redis GET failed for {key}: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding undecodable cache entry: {key}")
            return None

    def set(self, key: str, value: Any, ttl: float) -> bool:
        encoded = json.dumps(value)
        try:
            return bool(self.client.set(self._key(key), encoded, ex=max(1, math.ceil(ttl))))
        except RedisError as e:
            raise CacheError(f"Redis SET failed for {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self._key(key))
        except RedisError as e:
            raise CacheError(f"Redis DELETE failed for {key}: {e}") from e


def create_cache(cache_settings) -> CacheStore:
    """Build the cache backend named by CacheSettings.backend."""
    if cache_settings.backend == "redis":
        return RedisCache.from_url(
            cache_settings.redis_url,
            prefix=cache_settings.key_prefix,
            socket_timeout=cache_settings.socket_timeout,
        )
    logger.info("Using in-process memory cache")
    return MemoryCache()
