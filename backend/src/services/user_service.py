"""Service layer for user operations."""
import logging
import secrets
from uuid import UUID

from core.security import hash_password, verify_password
from repositories.base import RoleRepository, UserRepository
from repositories.exceptions import NotFoundError
from repositories.transaction import TxRepository
from schemas.entities import PermissionEntity, UserEntity
from schemas.user import UserCreate, UserUpdate
from services.exceptions import (
    DuplicateUsernameError,
    IncorrectPasswordError,
    InvalidIdError,
    parse_id,
)

logger = logging.getLogger(__name__)

RESET_PASSWORD_LENGTH = 12


def generate_password(length: int = RESET_PASSWORD_LENGTH) -> str:
    """Random URL-safe password of exactly ``length`` characters (at least 8)."""
    length = max(length, 8)
    return secrets.token_urlsafe(length)[:length]


async def resolve_role_ids(roles: RoleRepository, values: list[str]) -> list[UUID]:
    """
    Parse role ids and check that each names an existing role.

    Raises:
        InvalidIdError: An id is malformed or no role has it.
    """
    role_ids = []
    for value in values:
        role_id = parse_id("role", value)
        try:
            await roles.get_by_id(role_id)
        except NotFoundError as e:
            raise InvalidIdError("role", value) from e
        role_ids.append(role_id)
    return role_ids


class UserService:
    """Use cases for user accounts and their role assignments."""

    def __init__(self, users: UserRepository, roles: RoleRepository) -> None:
        self._users = users
        self._roles = roles

    async def _ensure_username_available(self, username: str, user_id: UUID | None = None) -> None:
        # Friendlier error only; the unique constraint is the authoritative guard
        try:
            existing = await self._users.get_by_username(username)
        except NotFoundError:
            return
        if existing.id != user_id:
            raise DuplicateUsernameError(username)

    async def create_user(self, data: UserCreate) -> UserEntity:
        """
        Create a user and assign roles in one transaction.

        If any role id is invalid the transaction rolls back and no user is created.

        Raises:
            DuplicateUsernameError: The username is taken.
            InvalidIdError: A role id is malformed or unknown.
            ConflictError: The backend rejected the write (e.g. duplicate email).
        """
        await self._ensure_username_available(data.username)
        user = UserEntity(
            username=data.username,
            email=data.email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            is_active=True,
        )

        async def create(tx: TxRepository) -> UserEntity:
            created = await tx.create_user(user)
            if data.role_ids:
                role_ids = await resolve_role_ids(self._roles, data.role_ids)
                await tx.assign_roles_to_user(created.id, role_ids)
            return created

        created = await self._users.execute_tx(create)
        logger.info("Created user %s", created.id)
        return await self._users.get_by_id(created.id)

    async def get_user(self, user_id: str) -> UserEntity:
        """Get a user with roles. Raises InvalidIdError or NotFoundError."""
        return await self._users.get_by_id(parse_id("user", user_id))

    async def get_user_by_username(self, username: str) -> UserEntity:
        """Get a user by username. Raises NotFoundError."""
        return await self._users.get_by_username(username)

    async def list_users(self, page: int, page_size: int) -> tuple[list[UserEntity], int]:
        """Get one page of users (1-based) and the total user count."""
        offset = (page - 1) * page_size
        users = await self._users.get_all(page_size, offset)
        total = await self._users.count()
        return users, total

    async def update_user(self, user_id: str, data: UserUpdate) -> UserEntity:
        """
        Update profile fields, and optionally password and roles, atomically.

        Only fields explicitly set on ``data`` change. A profile-only update is a
        direct write; adding a password or role change runs everything in one
        transaction.

        Raises:
            InvalidIdError: ``user_id`` or a role id is invalid.
            NotFoundError: The user does not exist.
            DuplicateUsernameError: The new username is taken.
        """
        user = await self._users.get_by_id(parse_id("user", user_id))
        changes = data.model_dump(exclude_unset=True, exclude={"password", "role_ids"})
        if changes.get("username") and changes["username"] != user.username:
            await self._ensure_username_available(changes["username"], user.id)
        for field, value in changes.items():
            if value is not None:
                setattr(user, field, value)

        role_ids_set = "role_ids" in data.model_fields_set and data.role_ids is not None
        if not data.password and not role_ids_set:
            await self._users.update(user)
            return await self._users.get_by_id(user.id)

        async def update(tx: TxRepository) -> None:
            await tx.update_user(user)
            if data.password:
                await tx.update_user_password(user.id, hash_password(data.password))
            if role_ids_set:
                role_ids = await resolve_role_ids(self._roles, data.role_ids)
                await tx.assign_roles_to_user(user.id, role_ids)

        await self._users.execute_tx(update)
        return await self._users.get_by_id(user.id)

    async def delete_user(self, user_id: str) -> None:
        """Delete a user. Raises InvalidIdError or NotFoundError."""
        await self._users.delete(parse_id("user", user_id))
        logger.info("Deleted user %s", user_id)

    async def change_password(
        self, user_id: str, current_password: str, new_password: str,
    ) -> None:
        """
        Replace the password after verifying the current one.

        Raises:
            InvalidIdError: ``user_id`` is malformed.
            NotFoundError: The user does not exist.
            IncorrectPasswordError: ``current_password`` does not match.
        """
        user = await self._users.get_by_id(parse_id("user", user_id))
        if not verify_password(current_password, user.password_hash):
            raise IncorrectPasswordError()
        await self._users.update_password(user.id, hash_password(new_password))

    async def reset_password(self, user_id: str) -> str:
        """
        Replace the password with a generated one and return it in plain text.

        The caller is responsible for handing the password to the user; it is not
        stored or logged anywhere else.

        Raises:
            InvalidIdError: ``user_id`` is malformed.
            NotFoundError: The user does not exist.
        """
        user = await self._users.get_by_id(parse_id("user", user_id))
        new_password = generate_password()
        await self._users.update_password(user.id, hash_password(new_password))
        logger.info("Reset password for user %s", user.id)
        return new_password

    async def get_user_permissions(self, user_id: str) -> list[PermissionEntity]:
        """Permissions granted through the user's roles. Raises NotFoundError."""
        user = await self._users.get_by_id(parse_id("user", user_id))
        return await self._users.get_user_permissions(user.id)

    async def has_permission(self, user_id: str, resource: str, action: str) -> bool:
        """Check whether the user may perform ``action`` on ``resource``."""
        return await self._users.has_permission(parse_id("user", user_id), resource, action)
