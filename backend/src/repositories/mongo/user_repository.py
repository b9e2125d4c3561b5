"""User repository for the document backend."""
from uuid import UUID

from pymongo import ASCENDING, DESCENDING

from repositories.base import UserRepository
from repositories.exceptions import NotFoundError
from repositories.mongo.base import MongoRepository
from repositories.mongo.documents import (
    PERMISSIONS,
    ROLE_PERMISSIONS,
    ROLES,
    USER_ROLES,
    USERS,
    from_document,
)
from schemas.entities import PermissionEntity, RoleEntity, UserEntity


class MongoUserRepository(MongoRepository, UserRepository):
    """Users stored in the ``users`` collection."""

    async def _fetch_by_id(self, user_id: UUID) -> UserEntity | None:
        document = await self._db[USERS].find_one({"_id": str(user_id)})
        return from_document(UserEntity, document) if document else None

    async def _fetch_by_username(self, username: str) -> UserEntity | None:
        document = await self._db[USERS].find_one({"username": username})
        return from_document(UserEntity, document) if document else None

    async def _fetch_page(self, limit: int, offset: int) -> list[UserEntity]:
        documents = await self._find(
            USERS,
            {},
            sort=[("created_at", DESCENDING), ("_id", DESCENDING)],
            skip=offset,
            limit=limit,
        )
        return [from_document(UserEntity, d) for d in documents]

    async def _fetch_count(self) -> int:
        return await self._db[USERS].count_documents({})

    async def _fetch_roles(self, user_id: UUID) -> list[RoleEntity]:
        role_ids = await self._linked_ids(USER_ROLES, "user_id", [str(user_id)], "role_id")
        if not role_ids:
            return []
        documents = await self._find(
            ROLES, {"_id": {"$in": role_ids}}, sort=[("name", ASCENDING)],
        )
        return [from_document(RoleEntity, d) for d in documents]

    async def _fetch_permissions(self, user_id: UUID) -> list[PermissionEntity]:
        role_ids = await self._linked_ids(USER_ROLES, "user_id", [str(user_id)], "role_id")
        if not role_ids:
            return []
        permission_ids = await self._linked_ids(
            ROLE_PERMISSIONS, "role_id", role_ids, "permission_id",
        )
        if not permission_ids:
            return []
        documents = await self._find(
            PERMISSIONS,
            {"_id": {"$in": permission_ids}},
            sort=[("resource", ASCENDING), ("action", ASCENDING)],
        )
        return [from_document(PermissionEntity, d) for d in documents]

    async def _delete(self, user_id: UUID) -> None:
        key = str(user_id)

        async def cascade(session) -> None:  # noqa: ANN001
            result = await self._db[USERS].delete_one({"_id": key}, session=session)
            if result.deleted_count == 0:
                raise NotFoundError("user", user_id)
            await self._db[USER_ROLES].delete_many({"user_id": key}, session=session)

        await self._in_session(cascade)
