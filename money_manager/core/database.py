"""
Database connection pool.

Repositories depend on the narrow Pool protocol (execute, query,
query_row, close) rather than on SQLAlchemy directly, so tests can swap in
a scripted double. DatabasePool implements the protocol over a SQLAlchemy
AsyncEngine (asyncpg for PostgreSQL, aiosqlite for SQLite).

Statements are SQL text with named bind parameters:

    await pool.query_row(
        "select id from users where email = :email",
        {"email": "dima@example.com"},
    )
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncContextManager,
    AsyncIterator,
    Mapping,
    Optional,
    Protocol,
    runtime_checkable,
)

from sqlalchemy import text
from sqlalchemy.engine import URL, RowMapping
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from money_manager.core.config import DatabaseSettings
from money_manager.core.exceptions import PoolConnectionError
from money_manager.core.logging_config import get_logger


Params = Optional[Mapping[str, Any]]


@runtime_checkable
class Pool(Protocol):
    """
    Capability set repositories need from a connection pool.

    - execute: statements without result rows; returns affected row count
    - query: async context manager yielding an async iterator of rows;
      entering runs the statement, iterating fetches rows
    - query_row: at most one row, None when the statement produced none
    - close: release all connections; safe to call more than once
    """

    async def execute(self, statement: str, params: Params = None) -> int: ...

    def query(
        self, statement: str, params: Params = None
    ) -> AsyncContextManager[AsyncIterator[RowMapping]]: ...

    async def query_row(self, statement: str, params: Params = None) -> Optional[RowMapping]: ...

    async def close(self) -> None: ...


def create_engine_from_url(url: URL | str, max_connections: int = 25) -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    For SQLite:
    - Uses StaticPool (one shared connection, required for :memory:)
    - Enables check_same_thread=False for async compatibility

    Other drivers get a bounded QueuePool of ``max_connections`` with
    pre-ping so dead connections are replaced transparently.
    """
    is_sqlite = str(url).startswith("sqlite")

    engine_kwargs: dict = {"echo": False}
    if is_sqlite:
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_size"] = max_connections
        engine_kwargs["max_overflow"] = 0
        engine_kwargs["pool_pre_ping"] = True

    return create_async_engine(url, **engine_kwargs)


class DatabasePool:
    """
    Pool implementation backed by a SQLAlchemy AsyncEngine.

    Safe for concurrent use by many tasks; the engine hands out physical
    connections from its bounded pool. ``execute`` and ``query_row`` run in
    their own committed transaction. ``query`` is read-only and rolls back
    when the block exits.

    Attributes:
        engine: Underlying AsyncEngine
    """

    def __init__(self, engine: AsyncEngine, logger: Optional[logging.LoggerAdapter] = None):
        self.engine = engine
        self._log = logger or get_logger(__name__, component="database_pool")
        self._closed = False

    @classmethod
    async def connect(
        cls,
        settings: DatabaseSettings,
        logger: Optional[logging.LoggerAdapter] = None,
    ) -> "DatabasePool":
        """
        Build the pool and verify the database answers.

        Args:
            settings: Database section of the application settings
            logger: Logger for pool lifecycle events

        Returns:
            Connected DatabasePool

        Raises:
            PoolConnectionError: If the engine cannot be created or the
                liveness probe fails or times out. Not retried.
        """
        log = logger or get_logger(__name__, component="database_pool")
        url = settings.url()

        try:
            engine = create_engine_from_url(url, settings.max_connections)
        except (SQLAlchemyError, ImportError, ValueError) as exc:
            log.error(
                "failed to create database engine",
                extra={"error": str(exc), "database": url.render_as_string(hide_password=True)},
            )
            raise PoolConnectionError(f"cannot create engine: {exc}") from exc

        pool = cls(engine, log)
        try:
            await pool.ping(settings.connect_timeout.total_seconds())
        except (SQLAlchemyError, OSError, TimeoutError) as exc:
            log.error(
                "database liveness probe failed",
                extra={"error": str(exc) or type(exc).__name__, "database": url.render_as_string(hide_password=True)},
            )
            await pool.close()
            raise PoolConnectionError(f"liveness probe failed: {exc!r}") from exc

        log.info(
            "connected to database",
            extra={
                "database": url.render_as_string(hide_password=True),
                "max_connections": settings.max_connections,
            },
        )
        return pool

    async def ping(self, timeout_seconds: float = 2.0) -> None:
        """
        Run ``SELECT 1`` within a timeout.

        Raises:
            TimeoutError: If the database does not answer in time
            SQLAlchemyError: If the query fails
        """
        async with asyncio.timeout(timeout_seconds):
            async with self.engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                result.scalar()

    async def execute(self, statement: str, params: Params = None) -> int:
        async with self.engine.begin() as conn:
            result = await conn.execute(text(statement), dict(params or {}))
            return result.rowcount

    @asynccontextmanager
    async def query(self, statement: str, params: Params = None) -> AsyncIterator[AsyncIterator[RowMapping]]:
        """
        Stream rows of a statement.

        Usage:
            async with pool.query("select * from users") as rows:
                async for row in rows:
                    ...
        """
        async with self.engine.connect() as conn:
            result = await conn.stream(text(statement), dict(params or {}))
            try:
                yield result.mappings()
            finally:
                await result.close()

    async def query_row(self, statement: str, params: Params = None) -> Optional[RowMapping]:
        async with self.engine.begin() as conn:
            result = await conn.execute(text(statement), dict(params or {}))
            return result.mappings().first()

    async def close(self) -> None:
        """Dispose of all pooled connections. Further calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        await self.engine.dispose()
        self._log.info("database pool closed")

    @property
    def closed(self) -> bool:
        return self._closed
