"""
Pydantic value objects returned and accepted by repositories.
"""

from money_manager.schemas.user import User, UserCreate, UserUpdate

__all__ = ["User", "UserCreate", "UserUpdate"]
