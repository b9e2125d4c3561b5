"""Pydantic schemas for role endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from schemas.permission import PermissionResponse


class RoleCreate(BaseModel):
    """Schema for creating a role, optionally with its permissions."""

    name: str = Field(..., min_length=3, max_length=50)
    description: str = ""
    permission_ids: list[str] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    """
    Schema for updating a role.

    ``permission_ids`` replaces the role's permissions when present; an empty list
    removes them all. Omit it to leave permissions unchanged.
    """

    name: str | None = Field(default=None, min_length=3, max_length=50)
    description: str | None = None
    permission_ids: list[str] | None = None


class RoleSummary(BaseModel):
    """Role without its permissions (embedded in user responses)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str


class RoleResponse(BaseModel):
    """Schema for role responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str
    permissions: list[PermissionResponse] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
