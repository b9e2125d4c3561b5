"""Pydantic schemas for permission endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.validators import validate_required_text


class PermissionCreate(BaseModel):
    """Schema for creating a permission."""

    name: str = Field(..., min_length=3, max_length=100)
    description: str = ""
    resource: str = Field(..., min_length=1, max_length=100)
    action: str = Field(..., min_length=1, max_length=50)

    @field_validator("resource", "action")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Reject whitespace-only resource/action strings."""
        return validate_required_text(v)


class PermissionUpdate(BaseModel):
    """Schema for updating a permission. Only fields that are set are changed."""

    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = None
    resource: str | None = Field(default=None, min_length=1, max_length=100)
    action: str | None = Field(default=None, min_length=1, max_length=50)


class PermissionResponse(BaseModel):
    """Schema for permission responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str
    resource: str
    action: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
