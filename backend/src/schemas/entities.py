"""
Backend-neutral entity values returned by repositories.

Both storage backends map their rows/documents to these models, which is what lets
callers above the repository boundary ignore which backend is active. The same
models are the cached payloads: derived association fields (``User.roles``,
``Role.permissions``) are excluded from serialization so the cache only ever holds
scalar fields, and associations are re-fetched live on every read.
"""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PermissionEntity(BaseModel):
    """An action allowed on a resource."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID | None = None
    name: str
    resource: str
    action: str
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RoleEntity(BaseModel):
    """A named bundle of permissions."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID | None = None
    name: str
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    permissions: list[PermissionEntity] = Field(default_factory=list, exclude=True)


class UserEntity(BaseModel):
    """
    A user account.

    ``password_hash`` is part of the persisted and cached shape (authentication needs
    it) but never of any response schema.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID | None = None
    username: str
    email: str
    password_hash: str = Field(default="", repr=False)
    first_name: str = ""
    last_name: str = ""
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    roles: list[RoleEntity] = Field(default_factory=list, exclude=True)
