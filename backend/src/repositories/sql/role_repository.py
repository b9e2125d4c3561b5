"""Role repository for the relational backend."""
from uuid import UUID

from sqlalchemy import select

from models.permission import Permission
from models.role import Role, role_permissions
from repositories.base import RoleRepository
from repositories.sql.base import SqlRepository
from schemas.entities import PermissionEntity, RoleEntity


class SqlRoleRepository(SqlRepository, RoleRepository):
    """Roles stored in the ``roles`` table."""

    async def _fetch_by_id(self, role_id: UUID) -> RoleEntity | None:
        role = await self._first(select(Role).where(Role.id == role_id))
        return RoleEntity.model_validate(role) if role else None

    async def _fetch_by_name(self, name: str) -> RoleEntity | None:
        role = await self._first(select(Role).where(Role.name == name))
        return RoleEntity.model_validate(role) if role else None

    async def _fetch_all(self) -> list[RoleEntity]:
        roles = await self._all(select(Role).order_by(Role.created_at.desc()))
        return [RoleEntity.model_validate(r) for r in roles]

    async def _fetch_permissions(self, role_id: UUID) -> list[PermissionEntity]:
        permissions = await self._all(
            select(Permission)
            .join(role_permissions, role_permissions.c.permission_id == Permission.id)
            .where(role_permissions.c.role_id == role_id)
            .order_by(Permission.resource, Permission.action),
        )
        return [PermissionEntity.model_validate(p) for p in permissions]

    async def _delete(self, role_id: UUID) -> None:
        await self._delete_row(Role, "role", role_id)
