"""Tests for the fixed-window rate limiter."""

from unittest.mock import AsyncMock

import pytest

from weather_api.errors import CacheError
from weather_api.rate_limiter import RateLimiter
from weather_api.storage.cache import InMemoryCache


class TestRateLimiter:

    @pytest.mark.asyncio
    async def test_allows_up_to_limit_per_second(self):
        limiter = RateLimiter(InMemoryCache(), max_requests=3, clock=lambda: 1000.2)

        results = [await limiter.is_allowed("1.2.3.4") for _ in range(4)]

        assert results == [(True, 0), (True, 0), (True, 0), (False, 1)]

    @pytest.mark.asyncio
    async def test_new_window_resets_count(self):
        now = [1000.0]
        limiter = RateLimiter(InMemoryCache(), max_requests=1, clock=lambda: now[0])

        assert await limiter.is_allowed("1.2.3.4") == (True, 0)
        assert await limiter.is_allowed("1.2.3.4") == (False, 1)

        now[0] = 1001.0
        assert await limiter.is_allowed("1.2.3.4") == (True, 0)

    @pytest.mark.asyncio
    async def test_clients_are_counted_separately(self):
        limiter = RateLimiter(InMemoryCache(), max_requests=1, clock=lambda: 1000.0)

        assert await limiter.is_allowed("1.1.1.1") == (True, 0)
        assert await limiter.is_allowed("2.2.2.2") == (True, 0)

    @pytest.mark.asyncio
    async def test_counter_key_and_expiry(self):
        cache = AsyncMock()
        cache.increment.return_value = 1
        limiter = RateLimiter(cache, key_prefix="rl", clock=lambda: 1700000000.9)

        await limiter.is_allowed("1.2.3.4")

        cache.increment.assert_awaited_once_with("rl:1.2.3.4:1700000000")
        cache.expire.assert_awaited_once_with("rl:1.2.3.4:1700000000", 2)

    @pytest.mark.asyncio
    async def test_fails_open_when_cache_is_down(self):
        cache = AsyncMock()
        cache.increment.side_effect = CacheError("redis down")
        limiter = RateLimiter(cache, max_requests=1)

        assert await limiter.is_allowed("1.2.3.4") == (True, 0)

    @pytest.mark.asyncio
    async def test_ttl_is_set_on_every_hit(self):
        cache = AsyncMock()
        cache.increment.side_effect = [1, 2]
        cache.expire.side_effect = [CacheError("timeout"), None]
        limiter = RateLimiter(cache, key_prefix="rl", clock=lambda: 1700000000.0)

        assert await limiter.is_allowed("1.2.3.4") == (True, 0)
        assert await limiter.is_allowed("1.2.3.4") == (True, 0)

        assert cache.expire.await_count == 2
        cache.expire.assert_awaited_with("rl:1.2.3.4:1700000000", 2)

    @pytest.mark.asyncio
    async def test_expired_windows_do_not_accumulate(self):
        now = [1000.0]
        cache = InMemoryCache(clock=lambda: now[0], purge_every=10)
        limiter = RateLimiter(cache, max_requests=5, clock=lambda: now[0])

        for _ in range(500):
            assert await limiter.is_allowed("1.2.3.4") == (True, 0)
            now[0] += 1

        assert len(cache._store) <= 12
        assert len(await cache.get_keys("rate_limit:*")) <= 2
