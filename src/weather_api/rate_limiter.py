"""Rate limiting implementation."""

import logging
import time
from typing import Callable

from weather_api.errors import CacheError
from weather_api.weather.protocols import Cache

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed one-second window rate limiter on top of the cache.

    Counts requests per client per second with INCR and sets the counter
    to expire shortly after its window on every hit. Allows requests if the cache is unavailable.
    """

    def __init__(
        self,
        cache: Cache,
        max_requests: int = 20,
        key_prefix: str = "rate_limit",
        clock: Callable[[], float] = time.time,
    ):
        """Initialize rate limiter.

        Args:
            cache: Cache used to hold the per-window counters
            max_requests: Requests allowed per client per second
            key_prefix: Prefix for counter keys
            clock: Wall clock in seconds
        """
        self.cache = cache
        self.max_requests = max_requests
        self.key_prefix = key_prefix
        self.clock = clock
        self.window_size = 1

    async def is_allowed(self, client_id: str) -> tuple[bool, int]:
        """Check if a request is allowed under the rate limit.

        Returns:
            Tuple of (is_allowed, retry_after_seconds)
            - is_allowed: True if request should be allowed
            - retry_after_seconds: Seconds to wait before retrying (0 if allowed)
        """
        window = int(self.clock())
        key = f"{self.key_prefix}:{client_id}:{window}"

        try:
            request_count = await self.cache.increment(key)
            # TTL is set on every hit, not only the first
            await self.cache.expire(key, self.window_size * 2)
        except CacheError as e:
            # Allow request if the cache is down
            logger.error(f"Rate limiter error: {e}")
            return True, 0

        if request_count > self.max_requests:
            logger.debug(f"Rate limited: client={client_id}, count={request_count}, max={self.max_requests}")
            return False, self.window_size

        return True, 0
