"""Shared fixtures and fakes for the weather service tests."""

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import pytest

from weather_api.config import Settings
from weather_api.storage.cache import InMemoryCache
from weather_api.storage.repository import InMemoryWeatherRepository
from weather_api.weather.models import WeatherReading, WeatherRecord

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
FETCHED_AT = datetime(2024, 6, 1, 11, 55, 0, tzinfo=timezone.utc)


class FakeWeatherAPIClient:
    """Returns a canned reading and records every call."""

    def __init__(self, reading: Optional[WeatherReading] = None, error: Optional[Exception] = None):
        self.reading = reading or make_reading()
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    async def fetch_weather_data(self, city: str, country: str) -> WeatherReading:
        self.calls.append((city, country))
        if self.error is not None:
            raise self.error
        return self.reading


def make_reading(temperature: float = 30.5, **overrides) -> WeatherReading:
    values = {
        "temperature": temperature,
        "description": "clear sky",
        "humidity": 20,
        "wind_speed": 3.1,
        "fetched_at": FETCHED_AT,
    }
    values.update(overrides)
    return WeatherReading(**values)


def make_record(city: str = "tehran", country: str = "IR", temperature: float = 28.5, **overrides) -> WeatherRecord:
    values = {
        "id": uuid.uuid4(),
        "city": city,
        "country": country,
        "temperature": temperature,
        "description": "haze",
        "humidity": 35,
        "wind_speed": 2.0,
        "fetched_at": FETCHED_AT,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    values.update(overrides)
    return WeatherRecord(**values)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        cache_backend="memory",
        database_url="sqlite+aiosqlite:///:memory:",
        run_migrations_on_startup=False,
        jwt_secret="test-secret",
        admin_username="admin",
        admin_password="s3cret",
        rate_limit_enabled=False,
    )


@pytest.fixture
def repository() -> InMemoryWeatherRepository:
    return InMemoryWeatherRepository()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache(default_ttl=600)


@pytest.fixture
def api_client() -> FakeWeatherAPIClient:
    return FakeWeatherAPIClient()
