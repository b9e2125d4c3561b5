"""Permission repository for the relational backend."""
from uuid import UUID

from sqlalchemy import func, select

from models.permission import Permission
from repositories.base import PermissionRepository
from repositories.sql.base import SqlRepository
from schemas.entities import PermissionEntity


class SqlPermissionRepository(SqlRepository, PermissionRepository):
    """Permissions stored in the ``permissions`` table."""

    async def _fetch_by_id(self, permission_id: UUID) -> PermissionEntity | None:
        permission = await self._first(select(Permission).where(Permission.id == permission_id))
        return PermissionEntity.model_validate(permission) if permission else None

    async def _fetch_by_resource_action(
        self, resource: str, action: str,
    ) -> PermissionEntity | None:
        permission = await self._first(
            select(Permission).where(
                Permission.resource == resource, Permission.action == action,
            ),
        )
        return PermissionEntity.model_validate(permission) if permission else None

    async def _fetch_all(self) -> list[PermissionEntity]:
        permissions = await self._all(select(Permission).order_by(Permission.created_at.desc()))
        return [PermissionEntity.model_validate(p) for p in permissions]

    async def _fetch_by_resource(self, resource: str) -> list[PermissionEntity]:
        permissions = await self._all(
            select(Permission)
            .where(Permission.resource == resource)
            .order_by(Permission.action),
        )
        return [PermissionEntity.model_validate(p) for p in permissions]

    async def _fetch_count(self) -> int:
        async with self._session_factory() as session:
            return await session.scalar(select(func.count()).select_from(Permission))

    async def _delete(self, permission_id: UUID) -> None:
        await self._delete_row(Permission, "permission", permission_id)
