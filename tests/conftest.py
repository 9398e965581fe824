"""
Pytest configuration and shared fixtures.

This module provides:
- anyio backend selection for async tests
- A ScriptedPool double (see helpers.py)
- An in-memory SQLite DatabasePool with the users table created
- Log state isolation for tests that reconfigure the root logger
"""

import logging

import pytest

from helpers import ScriptedPool
from money_manager.core.database import DatabasePool, create_engine_from_url
from money_manager.core.logging_config import BoundLogger
from money_manager.models import Base


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def anyio_backend():
    """
    Configure anyio backend for async tests.

    Returns:
        str: Backend name ("asyncio")
    """
    return "asyncio"


@pytest.fixture
def scripted_pool() -> ScriptedPool:
    return ScriptedPool()


@pytest.fixture
def test_logger() -> BoundLogger:
    """Logger whose records reach caplog through propagation."""
    return BoundLogger(logging.getLogger("tests.money_manager"), {"suite": "tests"})


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging() side effects on the root logger."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
async def sqlite_pool():
    """
    Provide a DatabasePool over in-memory SQLite.

    Creates tables before the test and disposes the engine after.
    """
    engine = create_engine_from_url(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    pool = DatabasePool(engine)
    yield pool

    await pool.close()
