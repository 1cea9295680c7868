"""
Pydantic schemas for user operations.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=5, max_length=255)
    role_id: int


class UserUpdate(BaseModel):
    """Partial update; omitted fields keep their value."""
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, min_length=5, max_length=255)
    role_id: int | None = None


class UserResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    name: str
    email: str
    role_id: int
    created_at: datetime

    model_config = {"from_attributes": True}
