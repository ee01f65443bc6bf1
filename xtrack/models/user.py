"""User and session data models."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    """Represents a platform user."""

    id: int = Field(..., description="User ID")
    username: str = Field(..., min_length=1, description="Login name")
    role: Literal["admin", "user"] = Field(..., description="User role")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")

    model_config = {"frozen": True}


class Session(BaseModel):
    """Authenticated identity and its bearer credential.

    Sessions are replaced wholesale on login and dropped on logout,
    never modified in place.
    """

    token: str = Field(..., min_length=1, description="Bearer credential")
    user: User = Field(..., description="Authenticated user")

    model_config = {"frozen": True}

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> str:
        return self.user.role

    @property
    def is_admin(self) -> bool:
        return self.user.role == "admin"


AuthResponse = Session
