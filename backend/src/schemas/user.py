"""Pydantic schemas for user endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.role import RoleSummary
from schemas.validators import validate_email


class UserCreate(BaseModel):
    """Schema for creating a user, optionally with roles."""

    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8)
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    role_ids: list[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        """Validate email format."""
        return validate_email(v)


class UserUpdate(BaseModel):
    """
    Schema for updating a user. Only fields that are set are changed.

    ``role_ids`` replaces the user's roles when present; an empty list removes
    them all.
    """

    username: str | None = Field(default=None, min_length=3, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    password: str | None = Field(default=None, min_length=8)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    is_active: bool | None = None
    role_ids: list[str] | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        """Validate email format when provided."""
        return validate_email(v) if v is not None else None


class PasswordChange(BaseModel):
    """Schema for a user changing their own password."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class UserResponse(BaseModel):
    """Schema for user responses. The password hash is never included."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    first_name: str
    last_name: str
    is_active: bool
    roles: list[RoleSummary] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserListResponse(BaseModel):
    """Schema for a page of users."""

    items: list[UserResponse]
    total: int
    page: int
    page_size: int


class PermissionCheckResponse(BaseModel):
    """Schema for a permission check result."""

    user_id: UUID
    resource: str
    action: str
    allowed: bool


class PasswordResetResponse(BaseModel):
    """Schema for an administrative password reset; the only time the password is shown."""

    user_id: UUID
    new_password: str
