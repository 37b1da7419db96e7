"""Cache storage backends.

Backends store opaque string payloads with a TTL. Serialization and key
naming live in ``CacheManager``.
"""

# flake8: noqa: E501


import abc
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis

logger = logging.getLogger(__name__)

REDIS_DISABLED_URL = "memory://"
DEFAULT_REDIS_MAX_CONNECTIONS = 20
DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS = 2.0
DEFAULT_REDIS_SOCKET_TIMEOUT_SECONDS = 2.0
DEFAULT_REDIS_HEALTH_CHECK_SECONDS = 30


class CacheBackend(abc.ABC):
    """Key/value store with per-entry expiry."""

    name = "base"

    @abc.abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the payload, or None on a miss."""

    @abc.abstractmethod
    def set(self, key: str, payload: str, ttl: int) -> bool:
        pass

    @abc.abstractmethod
    def delete(self, key: str) -> bool:
        pass

    @abc.abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``; return the count."""

    @abc.abstractmethod
    def stats(self) -> Dict[str, Any]:
        pass


class MemoryCacheBackend(CacheBackend):
    """In-process cache.

    Expired entries are dropped on read, and every ``sweep_every`` writes a
    sweep drops the expired entries nobody read again.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_every: int = 256):
        self._clock = clock
        self._entries: Dict[str, Tuple[Optional[float], str]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._sweep_every = max(1, sweep_every)
        self._writes = 0

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            expires_at, payload = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return payload

    def set(self, key: str, payload: str, ttl: int) -> bool:
        now = self._clock()
        expires_at = now + ttl if ttl and ttl > 0 else None
        with self._lock:
            self._entries[key] = (expires_at, payload)
            self._writes += 1
            if self._writes % self._sweep_every == 0:
                self._sweep(now)
        return True

    def _sweep(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at is not None and expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            size = sum(len(payload) for _, payload in self._entries.values())
            return {
                "backend": self.name,
                "entries": len(self._entries),
                "bytes": size,
                "hits": self._hits,
                "misses": self._misses,
            }


class RedisCacheBackend(CacheBackend):
    """Redis-backed cache shared between worker processes."""

    name = "redis"

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str, max_connections: int = DEFAULT_REDIS_MAX_CONNECTIONS) -> "RedisCacheBackend":
        pool = redis.ConnectionPool.from_url(
            url,
            max_connections=max_connections,
            socket_connect_timeout=DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS,
            socket_timeout=DEFAULT_REDIS_SOCKET_TIMEOUT_SECONDS,
            health_check_interval=DEFAULT_REDIS_HEALTH_CHECK_SECONDS,
            retry_on_timeout=True,
            decode_responses=True,
        )
        return cls(redis.Redis(connection_pool=pool))

    def get(self, key: str) -> Optional[str]:
        value = self.client.get(key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, payload: str, ttl: int) -> bool:
        if ttl and ttl > 0:
            return bool(self.client.set(key, payload, ex=int(ttl)))
        return bool(self.client.set(key, payload))

    def delete(self, key: str) -> bool:
        return bool(self.client.delete(key))

    def delete_prefix(self, prefix: str) -> int:
        deleted = 0
        batch = []
        for key in self.client.scan_iter(match=f"{prefix}*", count=500):
            batch.append(key)
            if len(batch) >= 500:
                deleted += self.client.delete(*batch)
                batch = []
        if batch:
            deleted += self.client.delete(*batch)
        return deleted

    def stats(self) -> Dict[str, Any]:
        info = self.client.info(section="memory")
        return {
            "backend": self.name,
            "entries": self.client.dbsize(),
            "bytes": info.get("used_memory", 0),
        }


def create_cache_backend(backend: str = "memory", redis_url: Optional[str] = None) -> CacheBackend:
    """Build the configured backend; ``memory://`` or no URL means in-process."""
    if backend == "redis" and redis_url and redis_url.strip().lower() != REDIS_DISABLED_URL:
        return RedisCacheBackend.from_url(redis_url.strip())
    return MemoryCacheBackend()
