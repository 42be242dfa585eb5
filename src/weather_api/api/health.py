"""Health, liveness and readiness endpoints."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from weather_api.config import APP_VERSION
from weather_api.errors import WeatherServiceError
from weather_api.weather.models import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def _up() -> HealthResponse:
    return HealthResponse(status="UP", components={"api": "UP"}, version=APP_VERSION)


@router.get("", response_model=HealthResponse)
async def basic_health() -> HealthResponse:
    """Returns UP while the service is running."""
    return _up()


@router.get("/live", response_model=HealthResponse)
async def liveness_check() -> HealthResponse:
    """Liveness check for container orchestration."""
    return _up()


@router.get("/ready", response_model=HealthResponse, responses={503: {"model": HealthResponse}})
async def readiness_check(request: Request):
    """Verify the database and cache connections.

    Returns:
        200 when both are reachable, 503 with the failing component marked DOWN
    """
    components = {"api": "UP", "database": "UP", "cache": "UP"}
    state = request.app.state

    try:
        await state.repository.ping()
    except WeatherServiceError as e:
        logger.error(f"Database health check failed: {e}")
        components["database"] = "DOWN"

    try:
        await state.cache.health_check()
    except WeatherServiceError as e:
        logger.error(f"Cache health check failed: {e}")
        components["cache"] = "DOWN"

    healthy = all(value == "UP" for value in components.values())
    response = HealthResponse(
        status="UP" if healthy else "DOWN",
        components=components,
        version=APP_VERSION,
    )
    return JSONResponse(status_code=200 if healthy else 503, content=response.model_dump())
