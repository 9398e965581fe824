"""
Storage error taxonomy shared by all repositories.

Repositories translate low-level driver failures into these classes so
callers can branch on the semantic outcome (duplicate, missing row,
transient failure, empty aggregate) without parsing driver messages.
The underlying failure is always chained as ``__cause__``.

Hierarchy:
    StorageError
    ├── AlreadyExistsError
    ├── NoRowsError
    │   └── NotFoundError
    ├── NoRecordsError
    └── DatabaseError
        ├── QueryError
        ├── ExecError
        ├── ScanError
        ├── IterationError
        └── PoolConnectionError

    ConfigurationError
"""

from typing import Any, Optional


class StorageError(Exception):
    """Base exception for all data access errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class AlreadyExistsError(StorageError):
    """A uniqueness constraint prevented the insert."""

    def __init__(self, entity: str, details: Optional[dict] = None):
        self.entity = entity
        super().__init__(f"{entity} already exists", details)


class NoRowsError(StorageError):
    """The statement produced zero rows."""

    def __init__(self, message: str = "no rows in result set", details: Optional[dict] = None):
        super().__init__(message, details)


class NotFoundError(NoRowsError):
    """
    Requested entity does not exist.

    Subclasses NoRowsError so ``except NoRowsError`` keeps matching a
    not-found raised by any repository.
    """

    def __init__(self, entity: str, entity_id: Any, details: Optional[dict] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} with id {entity_id} not found",
            details or {"entity": entity, "entity_id": entity_id},
        )


class NoRecordsError(StorageError):
    """An aggregate query reported an empty collection."""

    def __init__(self, entity: str, details: Optional[dict] = None):
        self.entity = entity
        super().__init__(f"no {entity} records found", details)


class DatabaseError(StorageError):
    """Generic database failure. Inspect ``__cause__`` for the driver error."""

    def __init__(self, operation: str, message: str = "database error", details: Optional[dict] = None):
        self.operation = operation
        super().__init__(f"{operation}: {message}", details)


class QueryError(DatabaseError):
    """The statement could not be run (connectivity, syntax, permissions)."""

    def __init__(self, operation: str, details: Optional[dict] = None):
        super().__init__(operation, "query failed", details)


class ExecError(DatabaseError):
    """A statement without result rows could not be run."""

    def __init__(self, operation: str, details: Optional[dict] = None):
        super().__init__(operation, "exec failed", details)


class ScanError(DatabaseError):
    """
    A row was fetched but could not be decoded into an entity.

    Points at data corruption or schema drift; treat as more severe than
    a missing row.
    """

    def __init__(self, operation: str, details: Optional[dict] = None):
        super().__init__(operation, "scan failed", details)


class IterationError(DatabaseError):
    """The row cursor failed between rows."""

    def __init__(self, operation: str, details: Optional[dict] = None):
        super().__init__(operation, "rows iteration failed", details)


class PoolConnectionError(DatabaseError):
    """The pool could not be built or did not answer the liveness probe."""

    def __init__(self, message: str = "cannot connect to database", details: Optional[dict] = None):
        super().__init__("connect", message, details)


class ConfigurationError(Exception):
    """Configuration file is missing, unreadable or invalid."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)
