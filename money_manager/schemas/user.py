from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    """
    Input for creating a user.

    The password must already be hashed; timestamps and id are assigned
    by the database.
    """

    username: Optional[str] = Field(default=None, description="Unique display name")
    email: str = Field(..., min_length=1, description="Unique login email")
    passhash: str = Field(..., min_length=1, description="Password hash")


class UserUpdate(UserCreate):
    """Input for updating a user. Only username, email and passhash change."""

    id: int = Field(..., ge=1)


class User(BaseModel):
    """
    Persisted user as read back from the ``users`` table.

    Every field is required: a row missing one, or holding a value of the
    wrong type, fails validation and is reported as a scan failure.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    username: Optional[str]
    email: str
    passhash: str = Field(repr=False)
    create_at: datetime
    update_at: datetime
