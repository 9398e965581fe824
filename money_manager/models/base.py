"""
Declarative base shared by all table definitions.

Repositories issue SQL text and never go through the ORM session; the
declarative classes exist so the schema can be created from metadata in
development and tests (production uses the SQL files in ``migrations/``).
"""

from sqlalchemy import Column, DateTime, func
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class TimestampMixin:
    """
    Adds create_at and update_at columns filled by the database.

    Both default to the insert time. Repositories refresh update_at with
    CURRENT_TIMESTAMP in their update statements; callers never set them.
    """

    create_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        doc="Timestamp when the row was inserted (immutable)",
    )

    update_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        doc="Timestamp of the last successful update",
    )
