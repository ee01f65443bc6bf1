"""Account data model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from xtrack.models.user import User


class Account(BaseModel):
    """Represents a tracked trading account (portfolio)."""

    id: int = Field(..., description="Account ID")
    user_id: int = Field(..., description="Owning user ID")
    name: str = Field(..., min_length=1, description="Display name")
    api_token: str = Field(..., description="Ingestion token used by data producers")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")
    user: Optional[User] = Field(default=None, description="Owner (admin listing only)")

    model_config = {"frozen": True}
