"""API endpoints for weather records."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from weather_api.api.dependencies import get_weather_service, require_user
from weather_api.weather.models import (
    ErrorResponse,
    FetchWeatherRequest,
    MessageResponse,
    WeatherRecord,
    WeatherUpdate,
)
from weather_api.weather.service import WeatherService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weather", tags=["weather"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request data"},
    404: {"model": ErrorResponse, "description": "Weather data not found"},
    500: {"model": ErrorResponse, "description": "Storage failure"},
}


@router.post("", response_model=WeatherRecord, responses={
    **ERROR_RESPONSES,
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    502: {"model": ErrorResponse, "description": "Weather provider failure"},
})
async def fetch_and_store(
    body: FetchWeatherRequest,
    service: WeatherService = Depends(get_weather_service),
    user: str = Depends(require_user),
) -> WeatherRecord:
    """Fetch weather for a city from the provider (or cache) and store it.

    Args:
        body: City and country to fetch

    Returns:
        Stored or cached weather record
    """
    logger.info(f"{user} requested weather for {body.city}, {body.country}")
    return await service.fetch_and_store_weather(body.city, body.country)


@router.get("", response_model=List[WeatherRecord])
async def get_all(
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Maximum records to return"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    service: WeatherService = Depends(get_weather_service),
) -> List[WeatherRecord]:
    """List stored weather records, oldest first."""
    return await service.get_all_weather(limit=limit, offset=offset)


@router.get("/latest/{city}", response_model=WeatherRecord, responses=ERROR_RESPONSES)
async def get_latest_by_city(
    city: str,
    service: WeatherService = Depends(get_weather_service),
) -> WeatherRecord:
    """Get the most recent weather record for a city."""
    return await service.get_latest_weather_by_city(city)


@router.get("/{record_id}", response_model=WeatherRecord, responses=ERROR_RESPONSES)
async def get_by_id(
    record_id: str,
    service: WeatherService = Depends(get_weather_service),
) -> WeatherRecord:
    """Get a weather record by its id."""
    return await service.get_weather_by_id(record_id)


@router.put("/{record_id}", response_model=WeatherRecord, responses={
    **ERROR_RESPONSES,
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
})
async def update(
    record_id: str,
    body: WeatherUpdate,
    service: WeatherService = Depends(get_weather_service),
    user: str = Depends(require_user),
) -> WeatherRecord:
    """Partially update a weather record.

    Empty strings and zero values in the body leave the stored fields unchanged.
    """
    logger.info(f"{user} updating weather record {record_id}")
    return await service.update_weather(record_id, body)


@router.delete("/{record_id}", response_model=MessageResponse, responses={
    **ERROR_RESPONSES,
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
})
async def delete(
    record_id: str,
    service: WeatherService = Depends(get_weather_service),
    user: str = Depends(require_user),
) -> MessageResponse:
    """Delete a weather record."""
    logger.info(f"{user} deleting weather record {record_id}")
    await service.delete_weather(record_id)
    return MessageResponse(message="Weather record deleted")
