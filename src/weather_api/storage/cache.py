"""
Key-value cache backends.

Values are stored as JSON text. Pydantic models are written with their
camelCase aliases and read back through ``model.model_validate_json`` so a
stored payload that no longer matches the model surfaces as a CacheError.

Two implementations share the same surface:
  RedisCache     - redis.asyncio client, used in production
  InMemoryCache  - dict with expiry timestamps, used for local runs and tests
"""

from __future__ import annotations

import fnmatch
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import redis.asyncio as redis
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from weather_api.config import DEFAULT_CACHE_TTL_SECONDS
from weather_api.errors import CacheError, CacheMissError
from weather_api.weather.protocols import ModelT

logger = logging.getLogger(__name__)

REDIS_SOCKET_TIMEOUT_SECONDS = 5

# Writes between sweeps of expired InMemoryCache entries
PURGE_EVERY_WRITES = 100


def _dumps(value: Any) -> str:
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True)
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        raise CacheError(f"failed to marshal value: {e}") from e


def _loads(key: str, raw: Any, model: Type[ModelT]) -> ModelT:
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise CacheError(f"cached value for {key} does not match {model.__name__}") from e


def create_redis_client(url: str) -> redis.Redis:
    """Create the process-wide Redis client."""
    return redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
        socket_timeout=REDIS_SOCKET_TIMEOUT_SECONDS,
    )


class RedisCache:
    """Redis-backed cache.

    Usage:
        cache = RedisCache(create_redis_client(url), default_ttl=600)
        await cache.set("weather:tehran:IR", record)
        record = await cache.get("weather:tehran:IR", WeatherRecord)
    """

    def __init__(self, client: redis.Redis, default_ttl: int = DEFAULT_CACHE_TTL_SECONDS) -> None:
        """
        Args:
            client: An async Redis client (redis.asyncio compatible).
            default_ttl: TTL in seconds used by set(); 0 falls back to 10 minutes.
        """
        self._redis = client
        self.default_ttl = default_ttl or DEFAULT_CACHE_TTL_SECONDS

    async def get(self, key: str, model: Type[ModelT]) -> ModelT:
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            raise CacheError(f"cache GET failed for key={key}: {e}") from e
        if raw is None:
            raise CacheMissError(f"key not found: {key}")
        return _loads(key, raw, model)

    async def set(self, key: str, value: Any) -> None:
        await self.set_with_ttl(key, value, self.default_ttl)

    async def set_with_ttl(self, key: str, value: Any, ttl: int) -> None:
        data = _dumps(value)
        try:
            await self._redis.set(key, data, ex=ttl if ttl > 0 else None)
        except RedisError as e:
            raise CacheError(f"cache SET failed for key={key}: {e}") from e
        logger.debug("Cached key=%s ttl=%ds", key, ttl)

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self._redis.delete(*keys)
        except RedisError as e:
            raise CacheError(f"cache DELETE failed for keys={keys}: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            return await self._redis.exists(key) > 0
        except RedisError as e:
            raise CacheError(f"cache EXISTS failed for key={key}: {e}") from e

    async def expire(self, key: str, ttl: int) -> None:
        try:
            await self._redis.expire(key, ttl)
        except RedisError as e:
            raise CacheError(f"cache EXPIRE failed for key={key}: {e}") from e

    async def increment(self, key: str) -> int:
        try:
            return int(await self._redis.incr(key))
        except RedisError as e:
            raise CacheError(f"cache INCR failed for key={key}: {e}") from e

    async def get_ttl(self, key: str) -> int:
        """Remaining TTL in seconds; -1 when the key never expires, -2 when absent."""
        try:
            return int(await self._redis.ttl(key))
        except RedisError as e:
            raise CacheError(f"cache TTL failed for key={key}: {e}") from e

    async def get_keys(self, pattern: str) -> List[str]:
        try:
            keys = await self._redis.keys(pattern)
        except RedisError as e:
            raise CacheError(f"cache KEYS failed for pattern={pattern}: {e}") from e
        return [k.decode() if isinstance(k, bytes) else k for k in keys]

    async def flush(self) -> None:
        try:
            await self._redis.flushdb()
        except RedisError as e:
            raise CacheError(f"cache FLUSH failed: {e}") from e

    async def health_check(self) -> None:
        try:
            await self._redis.ping()
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            raise CacheError(f"redis ping failed: {e}") from e

    async def close(self) -> None:
        await self._redis.aclose()


class InMemoryCache:
    """Dict-backed cache with the same surface as RedisCache.

    Expired entries are dropped on access and swept every ``purge_every``
    writes, so keys that are never read again do not pile up. Single event
    loop only.
    """

    def __init__(
        self,
        default_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        purge_every: int = PURGE_EVERY_WRITES,
    ) -> None:
        self.default_ttl = default_ttl or DEFAULT_CACHE_TTL_SECONDS
        self._clock = clock
        self._store: Dict[str, Tuple[str, Optional[float]]] = {}
        self._closed = False
        self._purge_every = max(1, purge_every)
        self._writes = 0

    def _check_open(self) -> None:
        if self._closed:
            raise CacheError("cache is closed")

    def _note_write(self) -> None:
        self._writes += 1
        if self._writes >= self._purge_every:
            self._writes = 0
            self.purge_expired()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._store.items()
                   if expires_at is not None and expires_at <= now]
        for key in expired:
            del self._store[key]
        return len(expired)

    def _live(self, key: str) -> Optional[Tuple[str, Optional[float]]]:
        entry = self._store.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._store[key]
            return None
        return entry

    async def get(self, key: str, model: Type[ModelT]) -> ModelT:
        self._check_open()
        entry = self._live(key)
        if entry is None:
            raise CacheMissError(f"key not found: {key}")
        return _loads(key, entry[0], model)

    async def set(self, key: str, value: Any) -> None:
        await self.set_with_ttl(key, value, self.default_ttl)

    async def set_with_ttl(self, key: str, value: Any, ttl: int) -> None:
        self._check_open()
        expires_at = self._clock() + ttl if ttl > 0 else None
        self._store[key] = (_dumps(value), expires_at)
        self._note_write()

    async def delete(self, *keys: str) -> None:
        self._check_open()
        for key in keys:
            self._store.pop(key, None)

    async def exists(self, key: str) -> bool:
        self._check_open()
        return self._live(key) is not None

    async def expire(self, key: str, ttl: int) -> None:
        self._check_open()
        entry = self._live(key)
        if entry is not None:
            self._store[key] = (entry[0], self._clock() + ttl)

    async def increment(self, key: str) -> int:
        self._check_open()
        entry = self._live(key)
        if entry is None:
            value, expires_at = 0, None
        else:
            try:
                value = int(entry[0])
            except ValueError as e:
                raise CacheError(f"value at {key} is not an integer") from e
            expires_at = entry[1]
        value += 1
        self._store[key] = (str(value), expires_at)
        self._note_write()
        return value

    async def get_ttl(self, key: str) -> int:
        self._check_open()
        entry = self._live(key)
        if entry is None:
            return -2
        if entry[1] is None:
            return -1
        return max(0, int(entry[1] - self._clock()))

    async def get_keys(self, pattern: str) -> List[str]:
        self._check_open()
        return [k for k in list(self._store) if self._live(k) and fnmatch.fnmatchcase(k, pattern)]

    async def flush(self) -> None:
        self._check_open()
        self._store.clear()

    async def health_check(self) -> None:
        self._check_open()

    async def close(self) -> None:
        self._closed = True
