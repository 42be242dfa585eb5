"""Command line entry point for schema migrations.

Usage:
    weather-api-migrate up
    weather-api-migrate down
    weather-api-migrate status
    weather-api-migrate to 001
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from weather_api.config import Settings, load_settings
from weather_api.errors import StorageError
from weather_api.logging_config import configure_logging
from weather_api.storage.database import create_engine
from weather_api.storage.migration_manager import MigrationManager

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weather-api-migrate",
        description="Apply or roll back weather database migrations",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("up", help="Apply all pending migrations")
    commands.add_parser("down", help="Roll back the most recent migration")
    commands.add_parser("status", help="Show applied and pending migrations")
    to = commands.add_parser("to", help="Roll back to a given version")
    to.add_argument("version", help="Migration name or number, e.g. 001")
    return parser


async def run_command(args: argparse.Namespace, settings: Settings) -> None:
    engine = create_engine(settings)
    manager = MigrationManager(engine)
    try:
        if args.command == "up":
            applied = await manager.run_migrations()
            print(f"Applied {len(applied)} migration(s)" + (f": {', '.join(applied)}" if applied else ""))
        elif args.command == "down":
            reverted = await manager.rollback_last()
            print(f"Rolled back {reverted}" if reverted else "No migrations to roll back")
        elif args.command == "status":
            status = await manager.status()
            print(f"Current version: {status.current or 'none'}")
            for name in status.applied:
                print(f"  applied  {name}")
            for name in status.pending:
                print(f"  pending  {name}")
        elif args.command == "to":
            reverted = await manager.rollback_to(args.version)
            print(f"Rolled back {len(reverted)} migration(s)" + (f": {', '.join(reverted)}" if reverted else ""))
    finally:
        await engine.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)

    try:
        asyncio.run(run_command(args, settings))
    except (StorageError, ValueError) as e:
        logger.error(f"Migration command failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
