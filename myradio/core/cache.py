"""
Key-value cache stores with per-entry time-to-live.

Two implementations of the same protocol:
- RedisCacheStore: shared across worker processes (production)
- MemoryCacheStore: in-process, for development and tests

Values are strings; callers serialize before storing.
"""
import asyncio
import time
from typing import Optional, Protocol, runtime_checkable

from redis import asyncio as aioredis

from myradio.core import config
from myradio.utils import get_logger


log = get_logger(__name__)


@runtime_checkable
class CacheStore(Protocol):
    """Get/set-with-TTL key-value store."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class MemoryCacheStore:
    """In-process cache store guarded by an asyncio lock."""

    def __init__(self, clock=time.monotonic):
        self._entries: dict[str, tuple[float, str]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        async with self._lock:
            now = self._clock()
            # sweep expired entries
            expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (now + ttl, value)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)


class RedisCacheStore:
    """Cache store backed by Redis string keys with EX expiry."""

    def __init__(self, redis_client: aioredis.Redis, key_prefix: str = "myradio"):
        if redis_client is None:
            raise ValueError("Redis client is required")
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    async def get(self, key: str) -> Optional[str]:
        value = await self.redis.get(self._key(key))
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self.redis.set(self._key(key), value, ex=ttl)

    async def delete(self, key: str) -> None:
        await self.redis.delete(self._key(key))


def create_cache_store(url: Optional[str] = None) -> CacheStore:
    """Build the cache store for the configured CACHE_URL."""
    url = url if url is not None else config.CACHE_URL
    if url:
        log.info("Using Redis cache store")
        return RedisCacheStore(aioredis.from_url(url))
    log.warning("CACHE_URL not set - principals are cached per process only")
    return MemoryCacheStore()
