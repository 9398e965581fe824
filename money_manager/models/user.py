"""
Users table.
"""

from sqlalchemy import Column, Integer, Text

from money_manager.models.base import Base, TimestampMixin


class UserRecord(Base, TimestampMixin):
    """
    Row layout of the ``users`` table.

    Mirrors migrations/001_init_user_table.sql.

    Attributes:
        id: Auto-incrementing primary key
        username: Optional unique display name
        email: Unique login email
        passhash: Opaque password hash, produced outside the repository
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(Text, unique=True, nullable=True)
    email = Column(Text, unique=True, nullable=False)
    passhash = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"UserRecord(id={self.id!r}, email={self.email!r})"
