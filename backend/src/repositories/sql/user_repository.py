"""User repository for the relational backend."""
from uuid import UUID

from sqlalchemy import func, select

from models.permission import Permission
from models.role import Role, role_permissions
from models.user import User, user_roles
from repositories.base import UserRepository
from repositories.sql.base import SqlRepository
from schemas.entities import PermissionEntity, RoleEntity, UserEntity


class SqlUserRepository(SqlRepository, UserRepository):
    """Users stored in the ``users`` table."""

    async def _fetch_by_id(self, user_id: UUID) -> UserEntity | None:
        user = await self._first(select(User).where(User.id == user_id))
        return UserEntity.model_validate(user) if user else None

    async def _fetch_by_username(self, username: str) -> UserEntity | None:
        user = await self._first(select(User).where(User.username == username))
        return UserEntity.model_validate(user) if user else None

    async def _fetch_page(self, limit: int, offset: int) -> list[UserEntity]:
        users = await self._all(
            select(User)
            .order_by(User.created_at.desc(), User.id.desc())
            .limit(limit)
            .offset(offset),
        )
        return [UserEntity.model_validate(u) for u in users]

    async def _fetch_count(self) -> int:
        async with self._session_factory() as session:
            return await session.scalar(select(func.count()).select_from(User))

    async def _fetch_roles(self, user_id: UUID) -> list[RoleEntity]:
        roles = await self._all(
            select(Role)
            .join(user_roles, user_roles.c.role_id == Role.id)
            .where(user_roles.c.user_id == user_id)
            .order_by(Role.name),
        )
        return [RoleEntity.model_validate(r) for r in roles]

    async def _fetch_permissions(self, user_id: UUID) -> list[PermissionEntity]:
        permissions = await self._all(
            select(Permission)
            .join(role_permissions, role_permissions.c.permission_id == Permission.id)
            .join(user_roles, user_roles.c.role_id == role_permissions.c.role_id)
            .where(user_roles.c.user_id == user_id)
            .distinct()
            .order_by(Permission.resource, Permission.action),
        )
        return [PermissionEntity.model_validate(p) for p in permissions]

    async def _delete(self, user_id: UUID) -> None:
        await self._delete_row(User, "user", user_id)
