"""Versioned schema migrations applied through the async engine."""

import importlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from sqlalchemy import Column, DateTime, MetaData, String, Table, delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from weather_api.errors import StorageError

logger = logging.getLogger(__name__)

MIGRATIONS_PACKAGE = "weather_api.storage.migrations"
MIGRATIONS_DIR = Path(__file__).parent / "migrations"

_metadata = MetaData()
schema_versions = Table(
    "schema_versions",
    _metadata,
    Column("version", String(64), primary_key=True),
    Column("applied_at", DateTime(timezone=True), nullable=False),
)


@dataclass
class MigrationStatus:
    current: Optional[str]
    applied: List[str] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> List[str]:
    """Discover migration modules by naming convention v###_*.py."""
    return sorted(p.stem for p in directory.glob("v[0-9]*_*.py"))


class MigrationManager:
    """Applies and rolls back migration modules exposing up(conn)/down(conn)."""

    def __init__(self, engine: AsyncEngine, package: str = MIGRATIONS_PACKAGE,
                 directory: Path = MIGRATIONS_DIR):
        self.engine = engine
        self.package = package
        self.directory = directory

    def _module(self, name: str):
        return importlib.import_module(f"{self.package}.{name}")

    async def _applied(self, conn: AsyncConnection) -> List[str]:
        await conn.run_sync(_metadata.create_all)
        rows = await conn.execute(select(schema_versions.c.version))
        return sorted(row[0] for row in rows)

    async def status(self) -> MigrationStatus:
        """Current version plus applied and pending migration names."""
        try:
            async with self.engine.begin() as conn:
                applied = await self._applied(conn)
        except SQLAlchemyError as e:
            raise StorageError("failed to get migration status") from e
        pending = [name for name in discover_migrations(self.directory) if name not in applied]
        return MigrationStatus(current=applied[-1] if applied else None,
                               applied=applied, pending=pending)

    async def run_migrations(self) -> List[str]:
        """Apply all pending migrations in order. Returns the names applied."""
        status = await self.status()
        if not status.pending:
            logger.info("Database is up to date")
            return []

        newly_applied = []
        for name in status.pending:
            module = self._module(name)
            try:
                async with self.engine.begin() as conn:
                    await conn.run_sync(module.up)
                    await conn.execute(
                        insert(schema_versions).values(
                            version=name, applied_at=datetime.now(timezone.utc)
                        )
                    )
            except SQLAlchemyError as e:
                raise StorageError(f"failed to apply migration {name}") from e
            logger.info(f"Applied migration {name}")
            newly_applied.append(name)

        logger.info(f"Successfully migrated from {status.current} to {newly_applied[-1]}")
        return newly_applied

    async def _revert(self, name: str) -> None:
        module = self._module(name)
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(module.down)
                await conn.execute(delete(schema_versions).where(schema_versions.c.version == name))
        except SQLAlchemyError as e:
            raise StorageError(f"failed to roll back migration {name}") from e
        logger.info(f"Rolled back migration {name}")

    async def rollback_last(self) -> Optional[str]:
        """Roll back the most recently applied migration, if any."""
        status = await self.status()
        if status.current is None:
            logger.info("No migrations to roll back")
            return None
        await self._revert(status.current)
        return status.current

    async def rollback_to(self, version: str) -> List[str]:
        """Roll back every migration applied after ``version``.

        ``version`` may be a full module name (v001_create_weather) or its
        number (1 / 001). Returns the names rolled back, newest first.
        """
        status = await self.status()
        target = self._resolve(version, status.applied)
        reverted = []
        for name in reversed(status.applied):
            if name == target:
                break
            await self._revert(name)
            reverted.append(name)
        logger.info(f"Successfully rolled back to version {target}")
        return reverted

    @staticmethod
    def _resolve(version: str, applied: List[str]) -> str:
        for name in applied:
            if name == version:
                return name
            if version.isdigit() and int(name[1:].split("_", 1)[0]) == int(version):
                return name
        raise ValueError(f"migration {version} is not applied")
