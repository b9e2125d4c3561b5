"""Mapping between entity values and MongoDB documents."""
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import UUID

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, IndexModel

USERS = "users"
ROLES = "roles"
PERMISSIONS = "permissions"
USER_ROLES = "user_roles"
ROLE_PERMISSIONS = "role_permissions"

EntityT = TypeVar("EntityT", bound=BaseModel)

# Unique indexes stand in for the relational unique constraints
INDEXES: dict[str, list[IndexModel]] = {
    USERS: [
        IndexModel([("username", ASCENDING)], unique=True, name="uq_users_username"),
        IndexModel([("email", ASCENDING)], unique=True, name="uq_users_email"),
        IndexModel([("created_at", DESCENDING)], name="ix_users_created_at"),
    ],
    ROLES: [
        IndexModel([("name", ASCENDING)], unique=True, name="uq_roles_name"),
    ],
    PERMISSIONS: [
        IndexModel([("name", ASCENDING)], unique=True, name="uq_permissions_name"),
        IndexModel(
            [("resource", ASCENDING), ("action", ASCENDING)],
            unique=True,
            name="uq_permissions_resource_action",
        ),
    ],
    USER_ROLES: [
        IndexModel(
            [("user_id", ASCENDING), ("role_id", ASCENDING)],
            unique=True,
            name="uq_user_roles_user_role",
        ),
        IndexModel([("role_id", ASCENDING)], name="ix_user_roles_role_id"),
    ],
    ROLE_PERMISSIONS: [
        IndexModel(
            [("role_id", ASCENDING), ("permission_id", ASCENDING)],
            unique=True,
            name="uq_role_permissions_role_permission",
        ),
        IndexModel([("permission_id", ASCENDING)], name="ix_role_permissions_permission_id"),
    ],
}


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the unique and lookup indexes for every collection (idempotent)."""
    for collection, indexes in INDEXES.items():
        await db[collection].create_indexes(indexes)


def utcnow() -> datetime:
    """Current time; the document store has no server-side DEFAULT now()."""
    return datetime.now(UTC)


def to_document(entity: BaseModel) -> dict[str, Any]:
    """
    Convert an entity to a document keyed by its string id.

    Excluded association fields never reach the document.
    """
    data = entity.model_dump()
    data["_id"] = str(data.pop("id"))
    return data


def from_document(model: type[EntityT], document: dict[str, Any]) -> EntityT:
    """Build an entity from a stored document."""
    data = dict(document)
    data["id"] = UUID(data.pop("_id"))
    return model.model_validate(data)


def association_document(
    parent_field: str,
    parent_id: UUID,
    child_field: str,
    child_id: UUID,
    created_at: datetime,
) -> dict[str, Any]:
    """Build one association row, e.g. ``{"user_id": ..., "role_id": ...}``."""
    return {
        parent_field: str(parent_id),
        child_field: str(child_id),
        "created_at": created_at,
    }
