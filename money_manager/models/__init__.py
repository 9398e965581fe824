"""
SQLAlchemy table definitions.

Import models from this module to ensure they're registered with the
metadata before calling ``Base.metadata.create_all``.
"""

from money_manager.models.base import Base
from money_manager.models.user import UserRecord

__all__ = [
    "Base",
    "UserRecord",
]
