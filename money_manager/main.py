"""
Money Manager - application entry point.

Loads configuration, configures logging, connects the database pool and
wires the repositories. The HTTP server, cache and migrations runner are
not part of this service yet, so the process bootstraps, reports
readiness and shuts down cleanly.

Usage:
    money-manager --config config/dev.yaml
    money-manager --config config/dev.yaml --create-schema
"""

import argparse
import asyncio
import os
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional, Sequence

from money_manager.core.config import Settings, load_settings
from money_manager.core.database import DatabasePool
from money_manager.core.exceptions import ConfigurationError, PoolConnectionError
from money_manager.core.logging_config import flush_logging, get_logger, setup_logging
from money_manager.models import Base
from money_manager.repositories import UserRepository


DEFAULT_CONFIG_PATH = "config/dev.yaml"


@dataclass
class Application:
    """Process-wide collaborators, built once at startup."""

    settings: Settings
    pool: DatabasePool
    users: UserRepository


@asynccontextmanager
async def lifespan(settings: Settings) -> AsyncGenerator[Application, None]:
    """
    Application lifespan context manager.

    Startup:
        - Set up logging
        - Connect the database pool (fails fast, no retry)
        - Build repositories

    Shutdown:
        - Close database connections
        - Flush log handlers
    """
    setup_logging(
        level=settings.logger.level,
        encoding=settings.logger.encoding,
        output_path=settings.logger.output_path,
    )
    log = get_logger("money_manager", app=settings.app.name, env=settings.app.env)
    log.info(
        "config loaded",
        extra={
            "config": settings.model_dump(mode="json", exclude={"database": {"dsn", "password"}}),
            "database": settings.database.url().render_as_string(hide_password=True),
        },
    )

    pool = await DatabasePool.connect(settings.database, log.bind(component="database_pool"))
    try:
        users = UserRepository(pool, log.bind(component="user_repository"))
        yield Application(settings=settings, pool=pool, users=users)
    finally:
        await pool.close()
        log.info("shutdown complete")
        flush_logging()


async def create_schema(pool: DatabasePool) -> None:
    """Create tables from metadata. Development only; production uses migrations/."""
    async with pool.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def run(settings: Settings, create_tables: bool = False) -> None:
    async with lifespan(settings) as app:
        if create_tables:
            await create_schema(app.pool)
        log = get_logger("money_manager", app=settings.app.name)
        log.info("application ready", extra={"env": settings.app.env})
        # TODO: start the HTTP server here and wait for a shutdown signal,
        # bounded by settings.timeouts.shutdown_grace_period.


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="money-manager",
        description="Personal finance tracking backend",
    )
    parser.add_argument(
        "--config",
        default=os.getenv("MM_CONFIG_PATH", DEFAULT_CONFIG_PATH),
        help="Path to the YAML configuration file (default: $MM_CONFIG_PATH or %(default)s)",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables from metadata before starting",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 2

    try:
        asyncio.run(run(settings, create_tables=args.create_schema))
    except PoolConnectionError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
