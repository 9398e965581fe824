"""
User repository for user CRUD operations.

Talks to the ``users`` table through the Pool protocol with plain SQL,
maps rows onto the User schema and translates driver failures into the
storage error taxonomy. Every failure is logged at ERROR level with the
operation name, the user id when known and the underlying error before
it is raised.
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from money_manager.core.database import Params, Pool
from money_manager.core.exceptions import (
    AlreadyExistsError,
    DatabaseError,
    ExecError,
    IterationError,
    NoRecordsError,
    NoRowsError,
    NotFoundError,
    QueryError,
    ScanError,
)
from money_manager.core.logging_config import BoundLogger, get_logger
from money_manager.repositories.interfaces import IUserRepository
from money_manager.schemas.user import User, UserCreate, UserUpdate


ENTITY = "user"

# SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"

_USER_COLUMNS = "id, username, email, passhash, create_at, update_at"

INSERT_USER = """
    insert into users (username, email, passhash)
    values (:username, :email, :passhash)
    on conflict (email) do nothing
    returning id
"""

SELECT_USER_BY_ID = f"""
    select {_USER_COLUMNS}
    from users
    where id = :id
"""

UPDATE_USER = f"""
    update users
    set username = :username, email = :email, passhash = :passhash,
        update_at = current_timestamp
    where id = :id
    returning {_USER_COLUMNS}
"""

DELETE_USER = """
    delete from users
    where id = :id
"""

LIST_USERS = f"""
    select {_USER_COLUMNS}
    from users
    order by id
    limit :limit offset :offset
"""

COUNT_USERS = """
    select count(id) as total
    from users
"""


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    Tell a unique-constraint violation apart from other integrity errors.

    Checks the SQLSTATE exposed by PostgreSQL drivers, then the extended
    error name of sqlite3.
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    error_name = getattr(orig, "sqlite_errorname", None)
    if error_name:
        return error_name in {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}
    return "UNIQUE constraint failed" in str(orig)


class UserRepository(IUserRepository):
    """
    Repository for user data access.

    Stateless between calls: each operation is one statement against the
    shared pool and returns freshly built values. Cancellation and
    deadlines are inherited from the calling task.

    Attributes:
        pool: Pool the statements run on
    """

    def __init__(
        self,
        pool: Pool,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        """
        Initialize repository with a connection pool.

        Args:
            pool: Shared connection pool (or a test double)
            logger: Logger for outcomes; defaults to this module's logger
        """
        self.pool = pool
        self._log = logger or get_logger(__name__)

    def _bind(self, **fields: Any) -> BoundLogger:
        fields.setdefault("component", "user_repository")
        if isinstance(self._log, BoundLogger):
            return self._log.bind(**fields)
        if isinstance(self._log, logging.LoggerAdapter):
            return BoundLogger(self._log.logger, {**(self._log.extra or {}), **fields})
        return BoundLogger(self._log, fields)

    def _scan(self, operation: str, row: Mapping[str, Any], log: BoundLogger) -> User:
        try:
            return User.model_validate(dict(row))
        except (ValidationError, TypeError, ValueError) as exc:
            log.error("failed to scan user row", extra={"error": str(exc)})
            raise ScanError(operation) from exc

    async def _fetch_users(
        self,
        operation: str,
        statement: str,
        params: Params,
        log: BoundLogger,
    ) -> List[User]:
        users: List[User] = []
        try:
            async with self.pool.query(statement, params) as rows:
                iterator = aiter(rows)
                while True:
                    try:
                        row = await anext(iterator)
                    except StopAsyncIteration:
                        break
                    except SQLAlchemyError as exc:
                        log.error("rows iteration failed", extra={"error": str(exc)})
                        raise IterationError(operation) from exc
                    users.append(self._scan(operation, row, log))
        except SQLAlchemyError as exc:
            log.error("failed to execute query", extra={"error": str(exc)})
            raise QueryError(operation) from exc
        return users

    async def create(self, user: UserCreate) -> int:
        """
        Create a new user.

        The insert skips rows whose email already exists, so an empty
        result means the email is taken. A unique violation raised by the
        database (username collision) is reported the same way.

        Args:
            user: Username, email and pre-hashed password

        Returns:
            Generated user id

        Raises:
            AlreadyExistsError: If email or username is already used
            DatabaseError: On any other store failure

        Example:
            >>> user_id = await repo.create(
            ...     UserCreate(username="dima", email="dima@example.com", passhash="hash")
            ... )
        """
        log = self._bind(operation="create")
        params = {"username": user.username, "email": user.email, "passhash": user.passhash}

        try:
            row = await self.pool.query_row(INSERT_USER, params)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                log.error("user already exists", extra={"error": str(exc)})
                raise AlreadyExistsError(ENTITY) from exc
            log.error("failed to create user", extra={"error": str(exc)})
            raise DatabaseError("create", str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            log.error("failed to create user", extra={"error": str(exc)})
            raise DatabaseError("create", str(exc)) from exc

        if row is None:
            log.error("user already exists", extra={"error": "insert returned no row"})
            raise AlreadyExistsError(ENTITY) from NoRowsError()

        try:
            user_id = int(row["id"])
        except (KeyError, TypeError, ValueError) as exc:
            log.error("failed to scan created id", extra={"error": str(exc)})
            raise ScanError("create") from exc

        log.info("created user", extra={"user_id": user_id})
        return user_id

    async def get_by_id(self, user_id: int) -> User:
        """
        Retrieve a user by ID.

        Args:
            user_id: Primary key of the user

        Returns:
            User with all columns populated

        Raises:
            QueryError: If the query could not run (connectivity)
            IterationError: If fetching the row failed
            NotFoundError: If no user has this id
            ScanError: If the row could not be decoded (schema drift)
        """
        log = self._bind(operation="get_by_id", user_id=user_id)

        users = await self._fetch_users("get_by_id", SELECT_USER_BY_ID, {"id": user_id}, log)
        if not users:
            not_found = NotFoundError(ENTITY, user_id)
            log.error("user not found", extra={"error": str(not_found)})
            raise not_found

        return users[0]

    async def update(self, user: UserUpdate) -> User:
        """
        Update username, email and password hash in one statement.

        The database stamps update_at and returns the full row, so no
        separate existence check is made.

        Args:
            user: Id plus the new mutable fields

        Returns:
            User as stored after the update

        Raises:
            NotFoundError: If no user has this id (chained from NoRowsError)
            ScanError: If the returned row could not be decoded
            DatabaseError: On any other store failure
        """
        log = self._bind(operation="update", user_id=user.id)
        params = {
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "passhash": user.passhash,
        }

        try:
            row = await self.pool.query_row(UPDATE_USER, params)
        except SQLAlchemyError as exc:
            log.error("failed to execute update", extra={"error": str(exc)})
            raise DatabaseError("update", str(exc)) from exc

        if row is None:
            not_found = NotFoundError(ENTITY, user.id)
            log.error("user not found", extra={"error": str(not_found)})
            raise not_found from NoRowsError()

        return self._scan("update", row, log)

    async def delete(self, user_id: int) -> None:
        """
        Delete a user by ID.

        Raises:
            ExecError: If the statement could not run
            NotFoundError: If no row was deleted
        """
        log = self._bind(operation="delete", user_id=user_id)

        try:
            affected = await self.pool.execute(DELETE_USER, {"id": user_id})
        except SQLAlchemyError as exc:
            log.error("failed to execute delete", extra={"error": str(exc)})
            raise ExecError("delete") from exc

        if affected == 0:
            not_found = NotFoundError(ENTITY, user_id)
            log.error("user not found", extra={"error": str(not_found)})
            raise not_found

        log.info("deleted user")

    async def list_users(self, limit: int, offset: int) -> List[User]:
        """
        List users ordered by id.

        A scan failure on any row aborts the call; no partial list is
        returned.

        Args:
            limit: Maximum number of users
            offset: Users skipped from the start

        Returns:
            Users in ascending id order, empty list when nothing matches

        Raises:
            ValueError: If limit or offset is negative
            QueryError: If the query could not run
            IterationError: If the cursor failed between rows
            ScanError: If any row could not be decoded
        """
        log = self._bind(operation="list_users", limit=limit, offset=offset)
        if limit < 0 or offset < 0:
            message = f"limit and offset must be non-negative, got {limit}, {offset}"
            log.error("invalid pagination bounds", extra={"error": message})
            raise ValueError(message)

        return await self._fetch_users(
            "list_users", LIST_USERS, {"limit": limit, "offset": offset}, log
        )

    async def count(self) -> int:
        """
        Count all users.

        Returns:
            Number of users, always positive

        Raises:
            NoRecordsError: If the table is empty
            QueryError: If the query could not run
            ScanError: If the aggregate could not be read
        """
        log = self._bind(operation="count")

        try:
            row = await self.pool.query_row(COUNT_USERS)
        except SQLAlchemyError as exc:
            log.error("failed to execute count", extra={"error": str(exc)})
            raise QueryError("count") from exc

        try:
            if row is None:
                raise ValueError("count returned no row")
            total = int(row["total"])
        except (KeyError, TypeError, ValueError) as exc:
            log.error("failed to scan count", extra={"error": str(exc)})
            raise ScanError("count") from exc

        if total == 0:
            empty = NoRecordsError(ENTITY)
            log.error("no users found", extra={"error": str(empty)})
            raise empty

        return total
