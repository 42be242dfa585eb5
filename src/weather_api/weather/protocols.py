"""
Contracts between the weather service and its collaborators.

The service depends only on these protocols. Concrete implementations are
picked when the application is composed: the SQL or in-memory repository,
the Redis or in-memory cache, and the OpenWeatherMap client (or a test
double with the same shape).
"""

from typing import Any, List, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel

from weather_api.weather.models import WeatherReading, WeatherRecord

ModelT = TypeVar("ModelT", bound=BaseModel)


class WeatherAPIClient(Protocol):
    """Fetches a current reading from an external weather provider."""

    async def fetch_weather_data(self, city: str, country: str) -> WeatherReading:
        """Return a normalized reading for the city/country pair.

        Raises:
            UpstreamError: On network failure, timeout, non-2xx status or a
                payload missing required fields.
        """
        ...


class WeatherRepository(Protocol):
    """Relational persistence for weather records.

    All lookups by id raise NotFoundError when nothing matches; every other
    storage failure surfaces as StorageError. No retries are performed.
    """

    async def save(self, record: WeatherRecord) -> None:
        ...

    async def find_by_id(self, record_id: str) -> WeatherRecord:
        ...

    async def find_all(
        self, limit: Optional[int] = None, offset: int = 0
    ) -> List[WeatherRecord]:
        ...

    async def find_latest_by_city(self, city: str) -> WeatherRecord:
        ...

    async def update(self, record: WeatherRecord) -> None:
        ...

    async def delete(self, record_id: str) -> None:
        ...

    async def ping(self) -> None:
        """Raise StorageError if the store is unreachable."""
        ...


class Cache(Protocol):
    """Key-value cache with JSON values and per-key TTL.

    Every failure is raised as CacheError (CacheMissError for absent keys).
    """

    async def get(self, key: str, model: Type[ModelT]) -> ModelT:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def set_with_ttl(self, key: str, value: Any, ttl: int) -> None:
        ...

    async def delete(self, *keys: str) -> None:
        ...

    async def exists(self, key: str) -> bool:
        ...

    async def expire(self, key: str, ttl: int) -> None:
        ...

    async def increment(self, key: str) -> int:
        ...

    async def get_ttl(self, key: str) -> int:
        ...

    async def get_keys(self, pattern: str) -> List[str]:
        ...

    async def flush(self) -> None:
        ...

    async def health_check(self) -> None:
        ...

    async def close(self) -> None:
        ...
