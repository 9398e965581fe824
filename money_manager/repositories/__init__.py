"""
Repository layer for data access.

Provides data access abstractions following the Repository pattern,
isolating database access from business logic.
"""

from money_manager.repositories.interfaces import IUserRepository
from money_manager.repositories.user import UserRepository

__all__ = ["IUserRepository", "UserRepository"]
