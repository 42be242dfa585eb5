"""Weather record repositories: SQLAlchemy-backed and in-memory."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from weather_api.errors import NotFoundError, StorageError
from weather_api.storage.database import Database
from weather_api.storage.orm import WeatherRow
from weather_api.weather.models import WeatherRecord

logger = logging.getLogger(__name__)


def _parse_id(record_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        return None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_row(record: WeatherRecord) -> WeatherRow:
    return WeatherRow(
        id=record.id,
        city=record.city,
        country=record.country,
        temperature=record.temperature,
        description=record.description,
        humidity=record.humidity,
        wind_speed=record.wind_speed,
        fetched_at=record.fetched_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def to_record(row: WeatherRow) -> WeatherRecord:
    return WeatherRecord(
        id=row.id,
        city=row.city,
        country=row.country,
        temperature=row.temperature,
        description=row.description,
        humidity=row.humidity,
        wind_speed=row.wind_speed,
        fetched_at=_as_utc(row.fetched_at),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


class SqlWeatherRepository:
    """Weather repository over an async SQLAlchemy session factory."""

    def __init__(self, database: Database):
        self.database = database

    async def save(self, record: WeatherRecord) -> None:
        try:
            async with self.database.session_factory() as session:
                session.add(to_row(record))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save weather record {record.id}: {e}")
            raise StorageError("failed to save weather record") from e

    async def find_by_id(self, record_id: str) -> WeatherRecord:
        parsed = _parse_id(record_id)
        if parsed is None:
            raise NotFoundError(f"weather record {record_id} not found")
        try:
            async with self.database.session_factory() as session:
                row = await session.get(WeatherRow, parsed)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load weather record {record_id}: {e}")
            raise StorageError("failed to load weather record") from e
        if row is None:
            raise NotFoundError(f"weather record {record_id} not found")
        return to_record(row)

    async def find_all(self, limit: Optional[int] = None, offset: int = 0) -> List[WeatherRecord]:
        stmt = select(WeatherRow).order_by(WeatherRow.created_at, WeatherRow.id).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            async with self.database.session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list weather records: {e}")
            raise StorageError("failed to list weather records") from e
        return [to_record(row) for row in rows]

    async def find_latest_by_city(self, city: str) -> WeatherRecord:
        stmt = (
            select(WeatherRow)
            .where(WeatherRow.city == city)
            .order_by(WeatherRow.fetched_at.desc())
            .limit(1)
        )
        try:
            async with self.database.session_factory() as session:
                row = (await session.execute(stmt)).scalars().first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load latest weather for {city}: {e}")
            raise StorageError("failed to load latest weather") from e
        if row is None:
            raise NotFoundError(f"no weather data for city {city}")
        return to_record(row)

    async def update(self, record: WeatherRecord) -> None:
        try:
            async with self.database.session_factory() as session:
                await session.merge(to_row(record))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update weather record {record.id}: {e}")
            raise StorageError("failed to update weather record") from e

    async def delete(self, record_id: str) -> None:
        parsed = _parse_id(record_id)
        if parsed is None:
            raise NotFoundError(f"weather record {record_id} not found")
        try:
            async with self.database.session_factory() as session:
                result = await session.execute(delete(WeatherRow).where(WeatherRow.id == parsed))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete weather record {record_id}: {e}")
            raise StorageError("failed to delete weather record") from e
        if result.rowcount == 0:
            raise NotFoundError(f"weather record {record_id} not found")

    async def ping(self) -> None:
        await self.database.ping()


class InMemoryWeatherRepository:
    """Dict-backed repository for local runs and tests."""

    def __init__(self):
        self._records: Dict[uuid.UUID, WeatherRecord] = {}
        self._lock = asyncio.Lock()

    async def save(self, record: WeatherRecord) -> None:
        async with self._lock:
            if record.id in self._records:
                raise StorageError(f"duplicate weather record id {record.id}")
            self._records[record.id] = record.model_copy()

    async def find_by_id(self, record_id: str) -> WeatherRecord:
        parsed = _parse_id(record_id)
        async with self._lock:
            record = self._records.get(parsed) if parsed is not None else None
        if record is None:
            raise NotFoundError(f"weather record {record_id} not found")
        return record.model_copy()

    async def find_all(self, limit: Optional[int] = None, offset: int = 0) -> List[WeatherRecord]:
        async with self._lock:
            records = sorted(self._records.values(), key=lambda r: (r.created_at, str(r.id)))
        end = None if limit is None else offset + limit
        return [r.model_copy() for r in records[offset:end]]

    async def find_latest_by_city(self, city: str) -> WeatherRecord:
        async with self._lock:
            matches = [r for r in self._records.values() if r.city == city]
        if not matches:
            raise NotFoundError(f"no weather data for city {city}")
        return max(matches, key=lambda r: r.fetched_at).model_copy()

    async def update(self, record: WeatherRecord) -> None:
        async with self._lock:
            self._records[record.id] = record.model_copy()

    async def delete(self, record_id: str) -> None:
        parsed = _parse_id(record_id)
        async with self._lock:
            if parsed is None or parsed not in self._records:
                raise NotFoundError(f"weather record {record_id} not found")
            del self._records[parsed]

    async def ping(self) -> None:
        return None
