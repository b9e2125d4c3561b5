"""Service layer for permission operations."""
import logging

from repositories.base import PermissionRepository
from repositories.exceptions import NotFoundError
from schemas.entities import PermissionEntity
from schemas.permission import PermissionCreate, PermissionUpdate
from services.exceptions import DuplicatePermissionError, parse_id

logger = logging.getLogger(__name__)


class PermissionService:
    """Use cases for permissions."""

    def __init__(self, permissions: PermissionRepository) -> None:
        self._permissions = permissions

    async def _ensure_pair_available(self, resource: str, action: str) -> None:
        try:
            await self._permissions.get_by_resource_action(resource, action)
        except NotFoundError:
            return
        raise DuplicatePermissionError(resource, action)

    async def create_permission(self, data: PermissionCreate) -> PermissionEntity:
        """
        Create a permission.

        Raises:
            DuplicatePermissionError: The resource/action pair already exists.
        """
        await self._ensure_pair_available(data.resource, data.action)
        permission = await self._permissions.create(
            PermissionEntity(
                name=data.name,
                description=data.description,
                resource=data.resource,
                action=data.action,
            ),
        )
        logger.info("Created permission %s:%s", permission.resource, permission.action)
        return permission

    async def get_permission(self, permission_id: str) -> PermissionEntity:
        """Get a permission. Raises InvalidIdError or NotFoundError."""
        return await self._permissions.get_by_id(parse_id("permission", permission_id))

    async def list_permissions(self, resource: str | None = None) -> list[PermissionEntity]:
        """Get every permission, or only those on ``resource``."""
        if resource:
            return await self._permissions.get_by_resource(resource)
        return await self._permissions.get_all()

    async def update_permission(
        self, permission_id: str, data: PermissionUpdate,
    ) -> PermissionEntity:
        """
        Update a permission.

        Raises:
            InvalidIdError: ``permission_id`` is malformed.
            NotFoundError: The permission does not exist.
            DuplicatePermissionError: The new resource/action pair already exists.
        """
        permission = await self._permissions.get_by_id(parse_id("permission", permission_id))
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        resource = changes.get("resource", permission.resource)
        action = changes.get("action", permission.action)
        if (resource, action) != (permission.resource, permission.action):
            await self._ensure_pair_available(resource, action)
        for field, value in changes.items():
            setattr(permission, field, value)
        return await self._permissions.update(permission)

    async def delete_permission(self, permission_id: str) -> None:
        """Delete a permission; it is removed from every role. Raises NotFoundError."""
        await self._permissions.delete(parse_id("permission", permission_id))
        logger.info("Deleted permission %s", permission_id)
