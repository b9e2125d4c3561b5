"""Role repository for the document backend."""
from uuid import UUID

from pymongo import ASCENDING, DESCENDING

from repositories.base import RoleRepository
from repositories.exceptions import NotFoundError
from repositories.mongo.base import MongoRepository
from repositories.mongo.documents import (
    PERMISSIONS,
    ROLE_PERMISSIONS,
    ROLES,
    USER_ROLES,
    from_document,
)
from schemas.entities import PermissionEntity, RoleEntity


class MongoRoleRepository(MongoRepository, RoleRepository):
    """Roles stored in the ``roles`` collection."""

    async def _fetch_by_id(self, role_id: UUID) -> RoleEntity | None:
        document = await self._db[ROLES].find_one({"_id": str(role_id)})
        return from_document(RoleEntity, document) if document else None

    async def _fetch_by_name(self, name: str) -> RoleEntity | None:
        document = await self._db[ROLES].find_one({"name": name})
        return from_document(RoleEntity, document) if document else None

    async def _fetch_all(self) -> list[RoleEntity]:
        documents = await self._find(ROLES, {}, sort=[("created_at", DESCENDING)])
        return [from_document(RoleEntity, d) for d in documents]

    async def _fetch_permissions(self, role_id: UUID) -> list[PermissionEntity]:
        permission_ids = await self._linked_ids(
            ROLE_PERMISSIONS, "role_id", [str(role_id)], "permission_id",
        )
        if not permission_ids:
            return []
        documents = await self._find(
            PERMISSIONS,
            {"_id": {"$in": permission_ids}},
            sort=[("resource", ASCENDING), ("action", ASCENDING)],
        )
        return [from_document(PermissionEntity, d) for d in documents]

    async def _delete(self, role_id: UUID) -> None:
        key = str(role_id)

        async def cascade(session) -> None:  # noqa: ANN001
            result = await self._db[ROLES].delete_one({"_id": key}, session=session)
            if result.deleted_count == 0:
                raise NotFoundError("role", role_id)
            await self._db[USER_ROLES].delete_many({"role_id": key}, session=session)
            await self._db[ROLE_PERMISSIONS].delete_many({"role_id": key}, session=session)

        await self._in_session(cascade)
