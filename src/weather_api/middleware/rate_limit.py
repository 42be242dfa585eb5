"""Rate limiting middleware."""

import logging
from typing import Callable, Dict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Enforces the per-client rate limit held in ``app.state.rate_limiter``.

    Returns HTTP 429 when the limit is exceeded. Does nothing until the
    application lifespan has installed a limiter.
    """

    # Paths that should bypass rate limiting
    BYPASS_PATHS = {
        "/health",
        "/health/live",
        "/health/ready",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/favicon.ico",
    }

    def __init__(self, app, enabled: bool = True):
        """Initialize rate limit middleware.

        Args:
            app: ASGI application
            enabled: Whether rate limiting is enforced at all
        """
        super().__init__(app)
        self.enabled = enabled
        logger.info(f"Rate limit enabled: {self.enabled}")

    @staticmethod
    def _limit_headers(rate_limiter) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(rate_limiter.max_requests),
            "X-RateLimit-Window": str(rate_limiter.window_size),
        }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled or request.url.path in self.BYPASS_PATHS:
            return await call_next(request)

        rate_limiter = getattr(request.app.state, "rate_limiter", None)
        if rate_limiter is None:
            return await call_next(request)

        client_host = request.client.host if request.client else "unknown"
        is_allowed, retry_after = await rate_limiter.is_allowed(client_host)

        if not is_allowed:
            endpoint = f"{request.method} {request.url.path}"
            logger.warning(f"Rate limit exceeded for {client_host} accessing {endpoint}")

            return JSONResponse(
                status_code=429,
                content={
                    "code": 429,
                    "message": "Rate limit exceeded. Please try again later.",
                },
                headers={
                    "Retry-After": str(retry_after),
                    **self._limit_headers(rate_limiter),
                },
            )

        response = await call_next(request)

        response.headers.update(self._limit_headers(rate_limiter))

        return response
