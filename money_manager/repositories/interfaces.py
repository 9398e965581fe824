"""
User Repository Interface (IUserRepository)

Abstract base class defining the contract for user persistence.

Implementation guide:
- All methods must be async
- Each call is one round trip; no retries, no caching
- Failures are raised as money_manager.core.exceptions classes with the
  driver error chained as __cause__
- Timestamps are owned by the database, never by the caller
"""

from abc import ABC, abstractmethod
from typing import List

from money_manager.schemas.user import User, UserCreate, UserUpdate


class IUserRepository(ABC):
    """
    Abstract interface for user persistence.

    Callers map outcomes to their own policy: AlreadyExistsError is a
    client error, NotFoundError a missing resource, everything deriving
    from DatabaseError a server-side failure.
    """

    @abstractmethod
    async def create(self, user: UserCreate) -> int:
        """
        Insert a user and return the generated id.

        Raises:
            AlreadyExistsError: If the email (or username) is taken
            DatabaseError: On any other store failure
        """
        pass

    @abstractmethod
    async def get_by_id(self, user_id: int) -> User:
        """
        Fetch one user.

        Raises:
            NotFoundError: If no user has this id
            QueryError: If the statement could not run
            IterationError: If the cursor failed
            ScanError: If the row could not be decoded
        """
        pass

    @abstractmethod
    async def update(self, user: UserUpdate) -> User:
        """
        Replace username, email and passhash; return the stored row.

        Raises:
            NotFoundError: If no user has this id
            DatabaseError: On any other store failure
        """
        pass

    @abstractmethod
    async def delete(self, user_id: int) -> None:
        """
        Hard-delete a user.

        Raises:
            NotFoundError: If no row was deleted
            ExecError: If the statement could not run
        """
        pass

    @abstractmethod
    async def list_users(self, limit: int, offset: int) -> List[User]:
        """
        Page through users ordered by id.

        Args:
            limit: Maximum number of users returned
            offset: Number of users skipped from the start

        Returns:
            Users in ascending id order; empty list when none match

        Raises:
            ValueError: If limit or offset is negative
            QueryError, IterationError, ScanError: On store failures
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """
        Total number of users, used for client-side pagination.

        Raises:
            NoRecordsError: If there are no users
            QueryError, ScanError: On store failures
        """
        pass
