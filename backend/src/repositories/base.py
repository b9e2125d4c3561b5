"""
Cache-aside entity repositories.

The base classes here own the caching protocol; backend subclasses only supply
queries. Reads try the cache under a deterministic key, fall back to the backend
on a miss, and repopulate the cache with the default TTL. Cached payloads hold
scalar fields only: a user's roles and a role's permissions are re-fetched live on
every read, hit or miss, so association changes never need to fan out into the
entity caches.

Writes invalidate by pattern and only after they succeed. Direct writes are single
atomic backend calls; multi-step writes go through execute_tx(), which invalidates
once the transaction has committed.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from core.cache import CacheClient
from repositories import cache_keys
from repositories.exceptions import NotFoundError
from repositories.transaction import TransactionManager, TxRepository
from schemas.entities import PermissionEntity, RoleEntity, UserEntity

logger = logging.getLogger(__name__)

T = TypeVar("T")

_USER = TypeAdapter(UserEntity)
_USERS = TypeAdapter(list[UserEntity])
_ROLE = TypeAdapter(RoleEntity)
_ROLES = TypeAdapter(list[RoleEntity])
_PERMISSION = TypeAdapter(PermissionEntity)
_PERMISSIONS = TypeAdapter(list[PermissionEntity])
_COUNT = TypeAdapter(int)


class CachedRepository(ABC):
    """Shared cache-aside and transaction plumbing for entity repositories."""

    def __init__(
        self,
        cache: CacheClient,
        tx_manager: TransactionManager[TxRepository, Any],
    ) -> None:
        self._cache = cache
        self._tx_manager = tx_manager

    async def execute_tx(self, fn: Callable[[TxRepository], Awaitable[T]]) -> T:
        """
        Run ``fn`` atomically, then invalidate every cache it could have staled.

        The scoped repository can write users, roles and permissions, so all of
        their patterns are cleared. Nothing is invalidated if the transaction fails.
        """
        result = await self._tx_manager.execute_tx(fn)
        await self._invalidate(*cache_keys.TRANSACTION_PATTERNS)
        return result

    async def _cached(
        self,
        key: str,
        adapter: TypeAdapter[T],
        load: Callable[[], Awaitable[T | None]],
    ) -> T | None:
        """
        Return the value cached under ``key``, or load it and cache it.

        An absent result (None) is never cached. A cached value that no longer
        validates is treated as a miss.
        """
        found, value = await self._cache.get(key)
        if found:
            try:
                return adapter.validate_python(value)
            except ValidationError as e:
                logger.warning("Discarding undecodable cache entry key=%s: %s", key, e)

        result = await load()
        if result is not None:
            await self._cache.set(key, adapter.dump_python(result, mode="json"))
        return result

    async def _invalidate(self, *patterns: str) -> None:
        for pattern in patterns:
            await self._cache.delete_by_pattern(pattern)

    @abstractmethod
    async def ping(self) -> None:
        """Round-trip to the backend, bypassing the cache. Raises if it is unreachable."""
        ...

    @abstractmethod
    async def _direct_write(self, fn: Callable[[TxRepository], Awaitable[T]]) -> T:
        """Run ``fn`` as a single atomic backend call outside the transaction manager."""
        ...

    @abstractmethod
    async def _standalone_tx(self, fn: Callable[[TxRepository], Awaitable[T]]) -> T:
        """Run ``fn`` in a transaction the repository opens and closes itself."""
        ...


class UserRepository(CachedRepository):
    """
    User reads and writes with cache-aside semantics.

    Subclasses implement the ``_fetch_*`` queries and ``_delete`` for one backend.
    """

    # --- Abstract Methods (backend-specific) ---

    @abstractmethod
    async def _fetch_by_id(self, user_id: UUID) -> UserEntity | None:
        ...

    @abstractmethod
    async def _fetch_by_username(self, username: str) -> UserEntity | None:
        ...

    @abstractmethod
    async def _fetch_page(self, limit: int, offset: int) -> list[UserEntity]:
        """Users ordered by created_at descending, ties broken by id."""
        ...

    @abstractmethod
    async def _fetch_count(self) -> int:
        ...

    @abstractmethod
    async def _fetch_roles(self, user_id: UUID) -> list[RoleEntity]:
        ...

    @abstractmethod
    async def _fetch_permissions(self, user_id: UUID) -> list[PermissionEntity]:
        """Distinct permissions granted to the user through any of their roles."""
        ...

    @abstractmethod
    async def _delete(self, user_id: UUID) -> None:
        """Delete the user and their role associations. Raises NotFoundError if absent."""
        ...

    # --- Reads ---

    async def get_by_id(self, user_id: UUID) -> UserEntity:
        """Get a user with live roles. Raises NotFoundError if absent."""
        user = await self._cached(
            cache_keys.user_by_id(user_id), _USER, lambda: self._fetch_by_id(user_id),
        )
        if user is None:
            raise NotFoundError("user", user_id)
        user.roles = await self._fetch_roles(user.id)
        return user

    async def get_by_username(self, username: str) -> UserEntity:
        """Get a user by username with live roles. Raises NotFoundError if absent."""
        user = await self._cached(
            cache_keys.user_by_username(username),
            _USER,
            lambda: self._fetch_by_username(username),
        )
        if user is None:
            raise NotFoundError("user", username)
        user.roles = await self._fetch_roles(user.id)
        return user

    async def get_all(self, limit: int, offset: int) -> list[UserEntity]:
        """
        Get a page of users, newest first, each with live roles.

        Raises:
            ValueError: ``limit`` is below 1 or ``offset`` is negative.
        """
        if limit < 1 or offset < 0:
            raise ValueError(f"invalid page: limit={limit} offset={offset}")
        users = await self._cached(
            cache_keys.users_page(limit, offset),
            _USERS,
            lambda: self._fetch_page(limit, offset),
        )
        for user in users:
            user.roles = await self._fetch_roles(user.id)
        return users

    async def count(self) -> int:
        """Total number of users."""
        return await self._cached(cache_keys.USERS_COUNT, _COUNT, self._fetch_count)

    async def get_user_roles(self, user_id: UUID) -> list[RoleEntity]:
        """Roles assigned to the user, always read from the backend."""
        return await self._fetch_roles(user_id)

    async def get_user_permissions(self, user_id: UUID) -> list[PermissionEntity]:
        """Permissions the user holds through their roles (cached)."""
        return await self._cached(
            cache_keys.user_permissions(user_id),
            _PERMISSIONS,
            lambda: self._fetch_permissions(user_id),
        )

    async def has_permission(self, user_id: UUID, resource: str, action: str) -> bool:
        """Check whether any of the user's roles grants ``action`` on ``resource``."""
        permissions = await self.get_user_permissions(user_id)
        return any(p.resource == resource and p.action == action for p in permissions)

    # --- Writes ---

    async def create(self, user: UserEntity) -> UserEntity:
        """Create a user through a transaction-scoped write."""
        created = await self._tx_manager.execute_tx(lambda tx: tx.create_user(user))
        await self._invalidate(*cache_keys.USER_PATTERNS)
        return created

    async def update(self, user: UserEntity) -> UserEntity:
        """Update profile fields. Raises NotFoundError if absent."""
        updated = await self._direct_write(lambda w: w.update_user(user))
        await self._invalidate(*cache_keys.USER_PATTERNS)
        return updated

    async def update_password(self, user_id: UUID, password_hash: str) -> None:
        """Replace the password hash. Raises NotFoundError if absent."""
        await self._direct_write(lambda w: w.update_user_password(user_id, password_hash))
        await self._invalidate(*cache_keys.USER_PATTERNS)

    async def delete(self, user_id: UUID) -> None:
        """Delete a user; role associations are removed with it."""
        await self._delete(user_id)
        await self._invalidate(*cache_keys.USER_PATTERNS)

    async def assign_roles_to_user(self, user_id: UUID, role_ids: list[UUID]) -> None:
        """Replace the user's roles in a transaction of its own."""
        await self._standalone_tx(lambda w: w.assign_roles_to_user(user_id, role_ids))
        await self._invalidate(*cache_keys.USER_PATTERNS)


class RoleRepository(CachedRepository):
    """
    Role reads and writes with cache-aside semantics.

    Deleting a role or changing its permissions also invalidates every user's
    resolved permission set.
    """

    # --- Abstract Methods (backend-specific) ---

    @abstractmethod
    async def _fetch_by_id(self, role_id: UUID) -> RoleEntity | None:
        ...

    @abstractmethod
    async def _fetch_by_name(self, name: str) -> RoleEntity | None:
        ...

    @abstractmethod
    async def _fetch_all(self) -> list[RoleEntity]:
        """All roles ordered by created_at descending."""
        ...

    @abstractmethod
    async def _fetch_permissions(self, role_id: UUID) -> list[PermissionEntity]:
        ...

    @abstractmethod
    async def _delete(self, role_id: UUID) -> None:
        """Delete the role and its associations. Raises NotFoundError if absent."""
        ...

    # --- Reads ---

    async def get_by_id(self, role_id: UUID) -> RoleEntity:
        """Get a role with live permissions. Raises NotFoundError if absent."""
        role = await self._cached(
            cache_keys.role_by_id(role_id), _ROLE, lambda: self._fetch_by_id(role_id),
        )
        if role is None:
            raise NotFoundError("role", role_id)
        role.permissions = await self._fetch_permissions(role.id)
        return role

    async def get_by_name(self, name: str) -> RoleEntity:
        """Get a role by name with live permissions. Raises NotFoundError if absent."""
        role = await self._cached(
            cache_keys.role_by_name(name), _ROLE, lambda: self._fetch_by_name(name),
        )
        if role is None:
            raise NotFoundError("role", name)
        role.permissions = await self._fetch_permissions(role.id)
        return role

    async def get_all(self) -> list[RoleEntity]:
        """Get every role, each with live permissions."""
        roles = await self._cached(cache_keys.ROLES_ALL, _ROLES, self._fetch_all)
        for role in roles:
            role.permissions = await self._fetch_permissions(role.id)
        return roles

    async def get_role_permissions(self, role_id: UUID) -> list[PermissionEntity]:
        """Permissions assigned to the role, always read from the backend."""
        return await self._fetch_permissions(role_id)

    # --- Writes ---

    async def create(self, role: RoleEntity) -> RoleEntity:
        """Create a role through a transaction-scoped write."""
        created = await self._tx_manager.execute_tx(lambda tx: tx.create_role(role))
        await self._invalidate(*cache_keys.ROLE_PATTERNS)
        return created

    async def update(self, role: RoleEntity) -> RoleEntity:
        """Update name and description. Raises NotFoundError if absent."""
        updated = await self._direct_write(lambda w: w.update_role(role))
        await self._invalidate(*cache_keys.ROLE_PATTERNS)
        return updated

    async def delete(self, role_id: UUID) -> None:
        """Delete a role; user and permission associations are removed with it."""
        await self._delete(role_id)
        await self._invalidate(*cache_keys.PERMISSION_GRAPH_PATTERNS)

    async def assign_permissions_to_role(
        self, role_id: UUID, permission_ids: list[UUID],
    ) -> None:
        """Replace the role's permissions in a transaction of its own."""
        await self._standalone_tx(
            lambda w: w.assign_permissions_to_role(role_id, permission_ids),
        )
        await self._invalidate(*cache_keys.PERMISSION_GRAPH_PATTERNS)


class PermissionRepository(CachedRepository):
    """
    Permission reads and writes with cache-aside semantics.

    Every permission write changes the permission graph, so it also invalidates
    role caches and every user's resolved permission set.
    """

    _write_patterns = (*cache_keys.PERMISSION_PATTERNS, *cache_keys.PERMISSION_GRAPH_PATTERNS)

    # --- Abstract Methods (backend-specific) ---

    @abstractmethod
    async def _fetch_by_id(self, permission_id: UUID) -> PermissionEntity | None:
        ...

    @abstractmethod
    async def _fetch_by_resource_action(
        self, resource: str, action: str,
    ) -> PermissionEntity | None:
        ...

    @abstractmethod
    async def _fetch_all(self) -> list[PermissionEntity]:
        """All permissions ordered by created_at descending."""
        ...

    @abstractmethod
    async def _fetch_by_resource(self, resource: str) -> list[PermissionEntity]:
        ...

    @abstractmethod
    async def _fetch_count(self) -> int:
        ...

    @abstractmethod
    async def _delete(self, permission_id: UUID) -> None:
        """Delete the permission and its role associations. Raises NotFoundError if absent."""
        ...

    # --- Reads ---

    async def get_by_id(self, permission_id: UUID) -> PermissionEntity:
        """Get a permission. Raises NotFoundError if absent."""
        permission = await self._cached(
            cache_keys.permission_by_id(permission_id),
            _PERMISSION,
            lambda: self._fetch_by_id(permission_id),
        )
        if permission is None:
            raise NotFoundError("permission", permission_id)
        return permission

    async def get_by_resource_action(self, resource: str, action: str) -> PermissionEntity:
        """Get the permission for a resource/action pair. Raises NotFoundError if absent."""
        permission = await self._cached(
            cache_keys.permission_by_resource_action(resource, action),
            _PERMISSION,
            lambda: self._fetch_by_resource_action(resource, action),
        )
        if permission is None:
            raise NotFoundError("permission", f"{resource}:{action}")
        return permission

    async def get_all(self) -> list[PermissionEntity]:
        """Get every permission."""
        return await self._cached(cache_keys.PERMISSIONS_ALL, _PERMISSIONS, self._fetch_all)

    async def get_by_resource(self, resource: str) -> list[PermissionEntity]:
        """Get every permission on one resource."""
        return await self._cached(
            cache_keys.permissions_by_resource(resource),
            _PERMISSIONS,
            lambda: self._fetch_by_resource(resource),
        )

    async def count(self) -> int:
        """Total number of permissions."""
        return await self._cached(cache_keys.PERMISSIONS_COUNT, _COUNT, self._fetch_count)

    # --- Writes ---

    async def create(self, permission: PermissionEntity) -> PermissionEntity:
        """Create a permission through a transaction-scoped write."""
        created = await self._tx_manager.execute_tx(lambda tx: tx.create_permission(permission))
        await self._invalidate(*self._write_patterns)
        return created

    async def update(self, permission: PermissionEntity) -> PermissionEntity:
        """Update a permission. Raises NotFoundError if absent."""
        updated = await self._direct_write(lambda w: w.update_permission(permission))
        await self._invalidate(*self._write_patterns)
        return updated

    async def delete(self, permission_id: UUID) -> None:
        """Delete a permission; it is removed from every role that held it."""
        await self._delete(permission_id)
        await self._invalidate(*self._write_patterns)
