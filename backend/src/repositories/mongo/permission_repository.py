"""Permission repository for the document backend."""
from uuid import UUID

from pymongo import ASCENDING, DESCENDING

from repositories.base import PermissionRepository
from repositories.exceptions import NotFoundError
from repositories.mongo.base import MongoRepository
from repositories.mongo.documents import PERMISSIONS, ROLE_PERMISSIONS, from_document
from schemas.entities import PermissionEntity


class MongoPermissionRepository(MongoRepository, PermissionRepository):
    """Permissions stored in the ``permissions`` collection."""

    async def _fetch_by_id(self, permission_id: UUID) -> PermissionEntity | None:
        document = await self._db[PERMISSIONS].find_one({"_id": str(permission_id)})
        return from_document(PermissionEntity, document) if document else None

    async def _fetch_by_resource_action(
        self, resource: str, action: str,
    ) -> PermissionEntity | None:
        document = await self._db[PERMISSIONS].find_one(
            {"resource": resource, "action": action},
        )
        return from_document(PermissionEntity, document) if document else None

    async def _fetch_all(self) -> list[PermissionEntity]:
        documents = await self._find(PERMISSIONS, {}, sort=[("created_at", DESCENDING)])
        return [from_document(PermissionEntity, d) for d in documents]

    async def _fetch_by_resource(self, resource: str) -> list[PermissionEntity]:
        documents = await self._find(
            PERMISSIONS, {"resource": resource}, sort=[("action", ASCENDING)],
        )
        return [from_document(PermissionEntity, d) for d in documents]

    async def _fetch_count(self) -> int:
        return await self._db[PERMISSIONS].count_documents({})

    async def _delete(self, permission_id: UUID) -> None:
        key = str(permission_id)

        async def cascade(session) -> None:  # noqa: ANN001
            result = await self._db[PERMISSIONS].delete_one({"_id": key}, session=session)
            if result.deleted_count == 0:
                raise NotFoundError("permission", permission_id)
            await self._db[ROLE_PERMISSIONS].delete_many(
                {"permission_id": key}, session=session,
            )

        await self._in_session(cascade)
