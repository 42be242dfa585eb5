"""Main FastAPI application for the weather storage service."""

import logging
import traceback
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from weather_api.api.auth import router as auth_router
from weather_api.api.endpoints import router as weather_router
from weather_api.api.error_handlers import register_exception_handlers
from weather_api.api.health import router as health_router
from weather_api.auth import AuthService
from weather_api.config import APP_VERSION, Settings, load_settings
from weather_api.errors import CacheError
from weather_api.logging_config import configure_logging
from weather_api.middleware.rate_limit import RateLimitMiddleware
from weather_api.rate_limiter import RateLimiter
from weather_api.storage.cache import InMemoryCache, RedisCache, create_redis_client
from weather_api.storage.database import Database, create_engine
from weather_api.storage.migration_manager import MigrationManager
from weather_api.storage.repository import SqlWeatherRepository
from weather_api.weather.client import OpenWeatherClient
from weather_api.weather.protocols import Cache, WeatherAPIClient, WeatherRepository
from weather_api.weather.service import WeatherService

logger = logging.getLogger(__name__)


async def _open_repository(settings: Settings, stack: AsyncExitStack) -> WeatherRepository:
    database = Database(create_engine(settings))
    stack.push_async_callback(database.dispose)
    logger.info("Database engine created")

    if settings.run_migrations_on_startup:
        applied = await MigrationManager(database.engine).run_migrations()
        if applied:
            logger.info(f"Applied migrations: {', '.join(applied)}")

    return SqlWeatherRepository(database)


async def _open_cache(settings: Settings, stack: AsyncExitStack) -> Cache:
    if settings.cache_backend == "memory":
        cache = InMemoryCache(default_ttl=settings.cache_ttl_seconds)
        logger.info("Cache initialized with in-memory backend")
    else:
        logger.info(f"Connecting to Redis at {settings.redis_url}")
        cache = RedisCache(create_redis_client(settings.redis_url),
                           default_ttl=settings.cache_ttl_seconds)
        try:
            await cache.health_check()
            logger.info("Cache initialized with Redis backend")
        except CacheError as e:
            # Requests still work without the cache; reads become misses
            logger.warning(f"Redis unavailable at startup, continuing without cache hits: {e}")
    stack.push_async_callback(cache.close)
    return cache


def _open_api_client(settings: Settings, stack: AsyncExitStack) -> WeatherAPIClient:
    if not settings.openweather_api_key:
        logger.warning("OPENWEATHER_API_KEY not set; weather fetches will be rejected upstream")
    client = OpenWeatherClient(settings.openweather_api_key, settings.openweather_base_url)
    stack.push_async_callback(client.aclose)
    return client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Creates the process-wide database engine, cache client and provider
    client unless they were injected into create_app, and releases whatever
    it created on shutdown.
    """
    settings: Settings = app.state.settings
    overrides = app.state.overrides

    async with AsyncExitStack() as stack:
        try:
            repository = overrides["repository"]
            if repository is None:
                repository = await _open_repository(settings, stack)
            cache = overrides["cache"]
            if cache is None:
                cache = await _open_cache(settings, stack)
            api_client = overrides["api_client"]
            if api_client is None:
                api_client = _open_api_client(settings, stack)
        except Exception as e:
            logger.error(f"Startup error: {e}")
            logger.error(traceback.format_exc())
            raise

        app.state.repository = repository
        app.state.cache = cache
        app.state.weather_service = WeatherService(repository, api_client, cache)
        app.state.auth_service = AuthService(settings)
        app.state.rate_limiter = RateLimiter(
            cache,
            max_requests=settings.rate_limit_requests_per_second,
            key_prefix=settings.rate_limit_key_prefix,
        )

        logger.info("Starting Weather Storage Service")
        yield
        logger.info("Shutting down Weather Storage Service")


def create_app(
    settings: Optional[Settings] = None,
    *,
    repository: Optional[WeatherRepository] = None,
    cache: Optional[Cache] = None,
    api_client: Optional[WeatherAPIClient] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        settings: Runtime settings (read from the environment if None)
        repository: Repository to use instead of the SQL store
        cache: Cache to use instead of the configured backend
        api_client: Weather provider client to use instead of OpenWeatherMap

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or load_settings()

    app = FastAPI(
        title="Weather Storage Service",
        description="Fetches weather from OpenWeatherMap, stores it and serves it with a Redis cache",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.overrides = {
        "repository": repository,
        "cache": cache,
        "api_client": api_client,
    }

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(RateLimitMiddleware, enabled=settings.rate_limit_enabled)

    register_exception_handlers(app)

    app.include_router(auth_router)
    app.include_router(weather_router)
    app.include_router(health_router)

    @app.get("/api", tags=["root"])
    async def api_info() -> dict:
        """API information endpoint.

        Returns:
            Basic service information
        """
        return {
            "message": "Weather Storage Service",
            "version": APP_VERSION,
            "docs": "/docs",
            "redoc": "/redoc",
            "weather": "/weather",
            "health": "/health"
        }

    return app


def main() -> None:
    """Main entry point for the application."""
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info(f"Starting server on {settings.host}:{settings.port}")
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="info" if not settings.debug else "debug"
    )


if __name__ == "__main__":
    main()
