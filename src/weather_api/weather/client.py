"""HTTP client for the OpenWeatherMap current weather API."""

import logging
from datetime import datetime, timezone

import httpx
from pydantic import ValidationError

from weather_api.config import OPENWEATHER_BASE_URL, OPENWEATHER_TIMEOUT_SECONDS
from weather_api.errors import UpstreamError
from weather_api.weather.models import OpenWeatherResponse, WeatherReading

logger = logging.getLogger(__name__)


class OpenWeatherClient:
    """Async client for fetching current weather from OpenWeatherMap."""

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENWEATHER_BASE_URL,
        timeout: float = OPENWEATHER_TIMEOUT_SECONDS,
    ):
        """Initialize the weather client.

        Args:
            api_key: OpenWeatherMap API key
            base_url: Base URL for the OpenWeatherMap API
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout)

    async def fetch_weather_data(self, city: str, country: str) -> WeatherReading:
        """Fetch the current reading for a city.

        Args:
            city: City name
            country: Country code or name

        Returns:
            Normalized weather reading

        Raises:
            UpstreamError: If the request fails or the response is unusable
        """
        url = f"{self.base_url}/weather"
        params = {"q": f"{city},{country}", "appid": self.api_key, "units": "metric"}

        logger.info(f"Fetching weather for city={city}, country={country}")

        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            payload = OpenWeatherResponse.model_validate(response.json())

        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error from OpenWeatherMap: {e.response.status_code} - {e.response.text}")
            raise UpstreamError(f"weather provider returned {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Request error to OpenWeatherMap: {e}")
            raise UpstreamError("failed to call weather API") from e
        except (ValueError, ValidationError) as e:
            logger.error(f"Invalid OpenWeatherMap response format: {e}")
            raise UpstreamError("invalid response from weather API") from e

        if not payload.weather:
            logger.error(f"OpenWeatherMap response for {city}, {country} has no weather description")
            raise UpstreamError("invalid response: missing weather description")

        return WeatherReading(
            temperature=payload.main.temp,
            description=payload.weather[0].description,
            humidity=payload.main.humidity,
            wind_speed=payload.wind.speed,
            fetched_at=datetime.fromtimestamp(payload.dt, tz=timezone.utc),
        )

    async def aclose(self):
        """Close the async HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()
