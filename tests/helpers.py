"""
Shared test helpers: row factories, driver errors and a scripted Pool.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError


FIXED_TIME = datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)


class FakeDriverError(Exception):
    """Driver-level exception carrying a SQLSTATE like asyncpg does."""

    def __init__(self, message: str, sqlstate: Optional[str] = None):
        super().__init__(message)
        self.sqlstate = sqlstate


def operational_error(message: str = "connection lost") -> OperationalError:
    return OperationalError("statement", {}, FakeDriverError(message))


def integrity_error(message: str, sqlstate: str) -> IntegrityError:
    return IntegrityError("statement", {}, FakeDriverError(message, sqlstate))


def user_row(user_id: int = 42, **overrides: Any) -> Dict[str, Any]:
    row = {
        "id": user_id,
        "username": "dima",
        "email": "dima@example.com",
        "passhash": "hash",
        "create_at": FIXED_TIME,
        "update_at": FIXED_TIME,
    }
    row.update(overrides)
    return row


class ScriptedPool:
    """
    Pool double driven by per-test scripts.

    Attributes:
        execute_result: int returned by execute, or exception raised
        query_row_result: mapping/None returned by query_row, or exception raised
        query_error: exception raised when entering query()
        query_rows: items yielded by query(); exception items are raised
            at that point of the iteration
        delay: seconds execute sleeps before answering
        calls: (method, statement, params) for every call made
    """

    def __init__(self) -> None:
        self.execute_result: Any = 1
        self.query_row_result: Any = None
        self.query_error: Optional[BaseException] = None
        self.query_rows: List[Any] = []
        self.calls: List[tuple] = []
        self.delay = 0.0
        self.closed = False

    async def execute(self, statement, params=None):
        self.calls.append(("execute", statement, params))
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.execute_result, BaseException):
            raise self.execute_result
        return self.execute_result

    @asynccontextmanager
    async def query(self, statement, params=None):
        self.calls.append(("query", statement, params))
        if self.query_error is not None:
            raise self.query_error

        async def rows():
            for item in self.query_rows:
                if isinstance(item, BaseException):
                    raise item
                yield item

        yield rows()

    async def query_row(self, statement, params=None):
        self.calls.append(("query_row", statement, params))
        if isinstance(self.query_row_result, BaseException):
            raise self.query_row_result
        return self.query_row_result

    async def close(self):
        self.closed = True
