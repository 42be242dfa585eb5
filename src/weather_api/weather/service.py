"""
WeatherService - cache-aside orchestration over the provider, store and cache.

Cache keys:
  weather:{city}:{country}   composite key, written by fetch and update
  {record id}                identity key as str(UUID), written by fetch, read-by-id and update

The repository is the source of truth. Cache failures never fail a request:
reads fall through to the miss path, writes and evictions are logged and
ignored. Repository and provider errors propagate unchanged.

City and country are joined with ':' as given; values that contain ':'
themselves can collide with other keys and are not escaped.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from weather_api.errors import CacheError, CacheMissError, WeatherServiceError
from weather_api.weather.models import WeatherRecord, WeatherUpdate
from weather_api.weather.protocols import Cache, WeatherAPIClient, WeatherRepository

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def city_cache_key(city: str, country: str) -> str:
    """Build the composite cache key for a city/country pair."""
    return f"weather:{city}:{country}"


def identity_cache_key(record_id: str) -> str:
    """Canonical identity key: any spelling uuid.UUID accepts maps to str(UUID)."""
    try:
        return str(uuid.UUID(str(record_id)))
    except ValueError:
        return record_id


class WeatherService:
    """Fetches, stores and serves weather records."""

    def __init__(
        self,
        repository: WeatherRepository,
        api_client: WeatherAPIClient,
        cache: Cache,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the weather service.

        Args:
            repository: Persistent store for weather records
            api_client: Upstream weather provider client
            cache: Key-value cache placed in front of the repository
            clock: Source of created/updated timestamps
        """
        self.repository = repository
        self.api_client = api_client
        self.cache = cache
        self.clock = clock

    async def _cache_get(self, key: str) -> Optional[WeatherRecord]:
        try:
            return await self.cache.get(key, WeatherRecord)
        except CacheMissError:
            logger.debug(f"Cache miss for key={key}")
        except CacheError as e:
            logger.warning(f"Cache read failed for key={key}: {e}")
        return None

    async def _cache_set(self, key: str, record: WeatherRecord) -> None:
        try:
            await self.cache.set(key, record)
        except CacheError as e:
            logger.error(f"Failed to set cache key {key}: {e}")

    async def _cache_delete(self, key: str) -> None:
        try:
            await self.cache.delete(key)
        except CacheError as e:
            logger.error(f"Failed to delete cache key {key}: {e}")

    async def fetch_and_store_weather(self, city: str, country: str) -> WeatherRecord:
        """Return cached weather for the pair, or fetch, persist and cache a new reading.

        A cache hit returns the stored record as is, without calling the
        provider or writing to the repository.

        Raises:
            UpstreamError: If the provider call fails
            StorageError: If the record cannot be saved
        """
        cache_key = city_cache_key(city, country)

        cached = await self._cache_get(cache_key)
        if cached is not None:
            logger.info(f"Retrieved weather data from cache for {city}, {country}")
            return cached

        logger.info(f"Cache miss for {city}, {country}. Fetching from API")
        reading = await self.api_client.fetch_weather_data(city, country)

        now = self.clock()
        record = WeatherRecord(
            id=uuid.uuid4(),
            city=city,
            country=country,
            temperature=reading.temperature,
            description=reading.description,
            humidity=reading.humidity,
            wind_speed=reading.wind_speed,
            fetched_at=reading.fetched_at,
            created_at=now,
            updated_at=now,
        )

        await self.repository.save(record)

        await self._cache_set(cache_key, record)
        await self._cache_set(str(record.id), record)

        logger.info(f"Stored weather record {record.id} for {city}, {country}")
        return record

    async def get_weather_by_id(self, record_id: str) -> WeatherRecord:
        """Return a record by id, serving from the identity cache key when possible.

        Raises:
            NotFoundError: If no record has this id
        """
        cached = await self._cache_get(identity_cache_key(record_id))
        if cached is not None:
            return cached

        record = await self.repository.find_by_id(record_id)
        await self._cache_set(str(record.id), record)
        return record

    async def get_latest_weather_by_city(self, city: str) -> WeatherRecord:
        return await self.repository.find_latest_by_city(city)

    async def get_all_weather(self, limit: Optional[int] = None, offset: int = 0) -> List[WeatherRecord]:
        return await self.repository.find_all(limit=limit, offset=offset)

    async def update_weather(self, record_id: str, update: WeatherUpdate) -> WeatherRecord:
        """Merge a partial update into a stored record.

        Only non-empty strings and non-zero numbers overwrite stored values, so
        this cannot reset humidity to 0 or clear a description.

        Raises:
            NotFoundError: If no record has this id
            StorageError: If the merged record cannot be written
        """
        existing = await self.repository.find_by_id(record_id)
        old_city, old_country = existing.city, existing.country

        changes = {
            name: value
            for name, value in update.model_dump().items()
            if value not in (None, "", 0)
        }
        changes["updated_at"] = self.clock()
        merged = existing.model_copy(update=changes)

        await self.repository.update(merged)

        await self._cache_set(str(merged.id), merged)

        if old_city != merged.city or old_country != merged.country:
            await self._cache_delete(city_cache_key(old_city, old_country))
        await self._cache_set(city_cache_key(merged.city, merged.country), merged)

        logger.info(f"Updated weather record {record_id}")
        return merged

    async def delete_weather(self, record_id: str) -> None:
        """Delete a record and evict its cache entries.

        Raises:
            NotFoundError: If the repository has no record with this id
            StorageError: If the delete fails
        """
        try:
            existing: Optional[WeatherRecord] = await self.repository.find_by_id(record_id)
        except WeatherServiceError as e:
            logger.info(f"Could not load weather record {record_id} before delete: {e}")
            existing = None

        await self.repository.delete(record_id)

        if existing is None:
            await self._cache_delete(identity_cache_key(record_id))
        else:
            await self._cache_delete(str(existing.id))
            await self._cache_delete(city_cache_key(existing.city, existing.country))

        logger.info(f"Deleted weather record {record_id}")
