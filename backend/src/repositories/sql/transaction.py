"""Relational transaction adapter: SQLAlchemy session executor and scoped writes."""
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, insert, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import Executable

from models.permission import Permission
from models.role import Role, role_permissions
from models.user import User, user_roles
from repositories.exceptions import (
    ConflictError,
    NotFoundError,
    TransactionBeginError,
    TransactionError,
)
from repositories.transaction import TransactionManager
from schemas.entities import PermissionEntity, RoleEntity, UserEntity


class SqlTransaction:
    """
    Executor handle wrapping one AsyncSession with an open transaction.

    commit() and rollback() map directly onto the session's and always close it;
    after either, the handle is dead and any further use raises TransactionError.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._closed = False

    @property
    def session(self) -> AsyncSession:
        """The live session; raises once the transaction has ended."""
        if self._closed:
            raise TransactionError("transaction is no longer active")
        return self._session

    async def commit(self) -> None:
        """Commit the transaction and release the connection."""
        try:
            await self.session.commit()
        finally:
            await self._close()

    async def rollback(self) -> None:
        """Roll back the transaction and release the connection."""
        try:
            await self.session.rollback()
        finally:
            await self._close()

    async def _close(self) -> None:
        self._closed = True
        await self._session.close()


def sql_begin_tx(session_factory: async_sessionmaker[AsyncSession]):  # noqa: ANN201
    """Build the begin-transaction callable for the relational backend."""

    async def begin_tx() -> SqlTransaction:
        session = session_factory()
        try:
            await session.begin()
            # Check out the connection now so pool failures surface at begin
            await session.connection()
        except (SQLAlchemyError, OSError) as e:
            await session.close()
            raise TransactionBeginError(f"failed to begin transaction: {e}") from e
        return SqlTransaction(session)

    return begin_tx


def create_sql_transaction_manager(
    session_factory: async_sessionmaker[AsyncSession],
) -> TransactionManager["SqlTxRepository", SqlTransaction]:
    """Wire the generic transaction manager to the relational backend."""
    return TransactionManager(
        sql_begin_tx(session_factory),
        lambda tx: SqlTxRepository(tx.session),
    )


def _now() -> datetime:
    return datetime.now(UTC)


class SqlTxRepository:
    """
    Scoped write repository for the relational backend.

    Every statement goes through the session of the owning transaction, so all
    writes issued during one execute_tx() call commit or roll back together.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _execute(self, entity: str, statement: Executable):  # noqa: ANN202
        """Execute a statement, translating constraint violations to ConflictError."""
        try:
            return await self._session.execute(statement)
        except IntegrityError as e:
            raise ConflictError(entity, str(e.orig)) from e

    async def _update(self, entity: str, key: UUID, statement: Executable) -> None:
        """Execute an UPDATE that must match exactly one row."""
        result = await self._execute(
            entity, statement.execution_options(synchronize_session=False),
        )
        if result.rowcount == 0:
            raise NotFoundError(entity, key)

    # --- Users ---

    async def create_user(self, user: UserEntity) -> UserEntity:
        """Insert a user, returning generated id and timestamps."""
        values = {
            "username": user.username,
            "email": user.email,
            "password_hash": user.password_hash,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "is_active": user.is_active,
        }
        if user.id is not None:
            values["id"] = user.id
        result = await self._execute(
            "user",
            insert(User).values(**values).returning(User.id, User.created_at, User.updated_at),
        )
        row = result.one()
        user.id, user.created_at, user.updated_at = row.id, row.created_at, row.updated_at
        return user

    async def update_user(self, user: UserEntity) -> UserEntity:
        """Update profile fields of an existing user."""
        user.updated_at = _now()
        await self._update(
            "user",
            user.id,
            update(User)
            .where(User.id == user.id)
            .values(
                username=user.username,
                email=user.email,
                first_name=user.first_name,
                last_name=user.last_name,
                is_active=user.is_active,
                updated_at=user.updated_at,
            ),
        )
        return user

    async def update_user_password(self, user_id: UUID, password_hash: str) -> None:
        """Replace a user's password hash."""
        await self._update(
            "user",
            user_id,
            update(User)
            .where(User.id == user_id)
            .values(password_hash=password_hash, updated_at=_now()),
        )

    async def assign_roles_to_user(self, user_id: UUID, role_ids: list[UUID]) -> None:
        """Replace the user's roles: delete every row for the user, then insert each."""
        await self._execute("user_role", delete(user_roles).where(user_roles.c.user_id == user_id))
        for role_id in dict.fromkeys(role_ids):
            await self._execute(
                "user_role", insert(user_roles).values(user_id=user_id, role_id=role_id),
            )

    # --- Roles ---

    async def create_role(self, role: RoleEntity) -> RoleEntity:
        """Insert a role, returning generated id and timestamps."""
        values = {"name": role.name, "description": role.description}
        if role.id is not None:
            values["id"] = role.id
        result = await self._execute(
            "role",
            insert(Role).values(**values).returning(Role.id, Role.created_at, Role.updated_at),
        )
        row = result.one()
        role.id, role.created_at, role.updated_at = row.id, row.created_at, row.updated_at
        return role

    async def update_role(self, role: RoleEntity) -> RoleEntity:
        """Update an existing role."""
        role.updated_at = _now()
        await self._update(
            "role",
            role.id,
            update(Role)
            .where(Role.id == role.id)
            .values(name=role.name, description=role.description, updated_at=role.updated_at),
        )
        return role

    async def assign_permissions_to_role(
        self, role_id: UUID, permission_ids: list[UUID],
    ) -> None:
        """Replace the role's permissions: delete every row for the role, then insert each."""
        await self._execute(
            "role_permission",
            delete(role_permissions).where(role_permissions.c.role_id == role_id),
        )
        for permission_id in dict.fromkeys(permission_ids):
            await self._execute(
                "role_permission",
                insert(role_permissions).values(role_id=role_id, permission_id=permission_id),
            )

    # --- Permissions ---

    async def create_permission(self, permission: PermissionEntity) -> PermissionEntity:
        """Insert a permission, returning generated id and timestamps."""
        values = {
            "name": permission.name,
            "description": permission.description,
            "resource": permission.resource,
            "action": permission.action,
        }
        if permission.id is not None:
            values["id"] = permission.id
        result = await self._execute(
            "permission",
            insert(Permission)
            .values(**values)
            .returning(Permission.id, Permission.created_at, Permission.updated_at),
        )
        row = result.one()
        permission.id = row.id
        permission.created_at, permission.updated_at = row.created_at, row.updated_at
        return permission

    async def update_permission(self, permission: PermissionEntity) -> PermissionEntity:
        """Update an existing permission."""
        permission.updated_at = _now()
        await self._update(
            "permission",
            permission.id,
            update(Permission)
            .where(Permission.id == permission.id)
            .values(
                name=permission.name,
                description=permission.description,
                resource=permission.resource,
                action=permission.action,
                updated_at=permission.updated_at,
            ),
        )
        return permission
