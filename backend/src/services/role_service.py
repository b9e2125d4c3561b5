"""Service layer for role operations."""
import logging
from uuid import UUID

from repositories.base import PermissionRepository, RoleRepository
from repositories.exceptions import NotFoundError
from repositories.transaction import TxRepository
from schemas.entities import PermissionEntity, RoleEntity
from schemas.role import RoleCreate, RoleUpdate
from services.exceptions import DuplicateRoleNameError, InvalidIdError, parse_id

logger = logging.getLogger(__name__)


class RoleService:
    """Use cases for roles and their permission assignments."""

    def __init__(self, roles: RoleRepository, permissions: PermissionRepository) -> None:
        self._roles = roles
        self._permissions = permissions

    async def _ensure_name_available(self, name: str, role_id: UUID | None = None) -> None:
        try:
            existing = await self._roles.get_by_name(name)
        except NotFoundError:
            return
        if existing.id != role_id:
            raise DuplicateRoleNameError(name)

    async def _resolve_permission_ids(self, values: list[str]) -> list[UUID]:
        permission_ids = []
        for value in values:
            permission_id = parse_id("permission", value)
            try:
                await self._permissions.get_by_id(permission_id)
            except NotFoundError as e:
                raise InvalidIdError("permission", value) from e
            permission_ids.append(permission_id)
        return permission_ids

    async def create_role(self, data: RoleCreate) -> RoleEntity:
        """
        Create a role and assign permissions in one transaction.

        Raises:
            DuplicateRoleNameError: The name is taken.
            InvalidIdError: A permission id is malformed or unknown.
        """
        await self._ensure_name_available(data.name)
        role = RoleEntity(name=data.name, description=data.description)

        async def create(tx: TxRepository) -> RoleEntity:
            created = await tx.create_role(role)
            if data.permission_ids:
                permission_ids = await self._resolve_permission_ids(data.permission_ids)
                await tx.assign_permissions_to_role(created.id, permission_ids)
            return created

        created = await self._roles.execute_tx(create)
        logger.info("Created role %s (%s)", created.name, created.id)
        return await self._roles.get_by_id(created.id)

    async def get_role(self, role_id: str) -> RoleEntity:
        """Get a role with permissions. Raises InvalidIdError or NotFoundError."""
        return await self._roles.get_by_id(parse_id("role", role_id))

    async def list_roles(self) -> list[RoleEntity]:
        """Get every role with permissions."""
        return await self._roles.get_all()

    async def update_role(self, role_id: str, data: RoleUpdate) -> RoleEntity:
        """
        Update a role, and optionally replace its permissions, atomically.

        Raises:
            InvalidIdError: ``role_id`` or a permission id is invalid.
            NotFoundError: The role does not exist.
            DuplicateRoleNameError: The new name is taken.
        """
        role = await self._roles.get_by_id(parse_id("role", role_id))
        if data.name and data.name != role.name:
            await self._ensure_name_available(data.name, role.id)
            role.name = data.name
        if data.description is not None:
            role.description = data.description

        if data.permission_ids is None:
            await self._roles.update(role)
            return await self._roles.get_by_id(role.id)

        async def update(tx: TxRepository) -> None:
            await tx.update_role(role)
            permission_ids = await self._resolve_permission_ids(data.permission_ids)
            await tx.assign_permissions_to_role(role.id, permission_ids)

        await self._roles.execute_tx(update)
        return await self._roles.get_by_id(role.id)

    async def delete_role(self, role_id: str) -> None:
        """Delete a role. Raises InvalidIdError or NotFoundError."""
        await self._roles.delete(parse_id("role", role_id))
        logger.info("Deleted role %s", role_id)

    async def get_role_permissions(self, role_id: str) -> list[PermissionEntity]:
        """Permissions assigned to a role. Raises NotFoundError for unknown roles."""
        role = await self._roles.get_by_id(parse_id("role", role_id))
        return role.permissions
