"""Default roles and permissions for a fresh deployment."""
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID

from core.security import hash_password
from repositories.exceptions import NotFoundError
from repositories.factory import Repositories
from repositories.transaction import TxRepository
from schemas.entities import PermissionEntity, RoleEntity, UserEntity

logger = logging.getLogger(__name__)

# (resource, action, description); the permission name is "resource:action"
DEFAULT_PERMISSIONS: list[tuple[str, str, str]] = [
    ("user", "read", "View user information"),
    ("user", "write", "Create or modify users"),
    ("user", "delete", "Delete users"),
    ("role", "read", "View role information"),
    ("role", "write", "Create or modify roles"),
    ("role", "delete", "Delete roles"),
    ("permission", "read", "View permission information"),
    ("permission", "write", "Create or modify permissions"),
    ("permission", "delete", "Delete permissions"),
]

# role name -> (description, which default permissions it is granted)
DEFAULT_ROLES: dict[str, tuple[str, Callable[[PermissionEntity], bool]]] = {
    "admin": ("Administrator with full access", lambda p: True),
    "supervisor": ("Supervisor with management permissions", lambda p: p.action != "delete"),
    "editor": (
        "Editor with content modification permissions",
        lambda p: p.action == "read" or (p.action == "write" and p.resource == "user"),
    ),
    "viewer": ("Viewer with read-only permissions", lambda p: p.action == "read"),
}

ADMIN_USERNAME = "admin"


@dataclass
class SeedResult:
    """What a seed run created; anything already present is left untouched."""

    permissions: list[str] = field(default_factory=list)
    roles: list[str] = field(default_factory=list)
    admin_created: bool = False


async def _ensure_permission(
    repos: Repositories, resource: str, action: str, description: str, result: SeedResult,
) -> PermissionEntity:
    try:
        return await repos.permissions.get_by_resource_action(resource, action)
    except NotFoundError:
        pass
    permission = await repos.permissions.create(
        PermissionEntity(
            name=f"{resource}:{action}", resource=resource, action=action, description=description,
        ),
    )
    result.permissions.append(permission.name)
    return permission


async def _create_role(
    repos: Repositories, role: RoleEntity, permission_ids: list[UUID],
) -> RoleEntity:
    async def create(tx: TxRepository) -> RoleEntity:
        created = await tx.create_role(role)
        await tx.assign_permissions_to_role(created.id, permission_ids)
        return created

    return await repos.roles.execute_tx(create)


async def seed_defaults(repos: Repositories, admin_password: str | None = None) -> SeedResult:
    """
    Create the default permissions and roles, and optionally an admin user.

    Safe to run repeatedly: existing permissions (by resource/action), roles (by
    name) and the admin user (by username) are never modified. A newly created
    role is granted its default permissions in one transaction.
    """
    result = SeedResult()
    permissions = [
        await _ensure_permission(repos, resource, action, description, result)
        for resource, action, description in DEFAULT_PERMISSIONS
    ]

    roles: dict[str, RoleEntity] = {}
    for name, (description, grants) in DEFAULT_ROLES.items():
        try:
            roles[name] = await repos.roles.get_by_name(name)
        except NotFoundError:
            granted = [p.id for p in permissions if grants(p)]
            role = RoleEntity(name=name, description=description)
            roles[name] = await _create_role(repos, role, granted)
            result.roles.append(name)

    if admin_password:
        try:
            await repos.users.get_by_username(ADMIN_USERNAME)
        except NotFoundError:
            admin = UserEntity(
                username=ADMIN_USERNAME,
                email="admin@example.com",
                password_hash=hash_password(admin_password),
                first_name="Admin",
                last_name="User",
            )
            admin_role_id = roles["admin"].id

            async def create_admin(tx: TxRepository) -> None:
                created = await tx.create_user(admin)
                await tx.assign_roles_to_user(created.id, [admin_role_id])

            await repos.users.execute_tx(create_admin)
            result.admin_created = True

    logger.info(
        "Seeded %d permissions, %d roles (admin created: %s)",
        len(result.permissions), len(result.roles), result.admin_created,
    )
    return result
