"""Document-store transaction adapter: motor session executor and scoped writes."""
import logging
from typing import Any
from uuid import UUID, uuid4

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorClientSession,
    AsyncIOMotorDatabase,
)
from pymongo.errors import BulkWriteError, DuplicateKeyError, PyMongoError

from repositories.exceptions import (
    ConflictError,
    NotFoundError,
    SessionStartError,
    TransactionBeginError,
    TransactionError,
)
from repositories.mongo.documents import (
    PERMISSIONS,
    ROLE_PERMISSIONS,
    ROLES,
    USER_ROLES,
    USERS,
    association_document,
    to_document,
    utcnow,
)
from repositories.transaction import TransactionManager
from schemas.entities import PermissionEntity, RoleEntity, UserEntity

logger = logging.getLogger(__name__)

DUPLICATE_ERRORS = (DuplicateKeyError, BulkWriteError)


class MongoTransaction:
    """
    Executor handle wrapping one client session with a started transaction.

    commit() maps to commit_transaction() and rollback() to abort_transaction();
    the session is ended after either, so the handle cannot be reused.
    """

    def __init__(self, session: AsyncIOMotorClientSession) -> None:
        self._session = session
        self._ended = False

    @property
    def session(self) -> AsyncIOMotorClientSession:
        """The live session; raises once the transaction has ended."""
        if self._ended:
            raise TransactionError("transaction is no longer active")
        return self._session

    async def commit(self) -> None:
        """Commit the multi-document transaction and end the session."""
        try:
            await self.session.commit_transaction()
        finally:
            await self._end()

    async def rollback(self) -> None:
        """Abort the multi-document transaction and end the session."""
        try:
            await self.session.abort_transaction()
        finally:
            await self._end()

    async def _end(self) -> None:
        self._ended = True
        try:
            await self._session.end_session()
        except PyMongoError as e:
            logger.warning("Failed to end MongoDB session: %s", e)


def mongo_begin_tx(client: AsyncIOMotorClient):  # noqa: ANN201
    """
    Build the begin-transaction callable for the document backend.

    Session-start and transaction-start failures are reported as distinct errors
    (SessionStartError vs TransactionBeginError).
    """

    async def begin_tx() -> MongoTransaction:
        try:
            session = await client.start_session()
        except PyMongoError as e:
            raise SessionStartError(f"failed to start session: {e}") from e
        try:
            session.start_transaction()
        except PyMongoError as e:
            await session.end_session()
            raise TransactionBeginError(f"failed to start transaction: {e}") from e
        return MongoTransaction(session)

    return begin_tx


def create_mongo_transaction_manager(
    client: AsyncIOMotorClient,
    db: AsyncIOMotorDatabase,
) -> TransactionManager["MongoTxRepository", MongoTransaction]:
    """Wire the generic transaction manager to the document backend."""
    return TransactionManager(
        mongo_begin_tx(client),
        lambda tx: MongoTxRepository(db, tx.session),
    )


class MongoTxRepository:
    """
    Scoped write repository for the document backend.

    Every call passes the owning session, so writes issued during one execute_tx()
    call commit or abort together. With ``session=None`` each call is a single
    atomic document operation, which is how the direct write path reuses it.

    Documents carry an application-generated UUID string as ``_id``; the adapter
    defaults ``created_at`` and always refreshes ``updated_at``.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        session: AsyncIOMotorClientSession | None = None,
    ) -> None:
        self._db = db
        self._session = session

    async def _insert(self, collection: str, entity_name: str, document: dict[str, Any]) -> None:
        try:
            await self._db[collection].insert_one(document, session=self._session)
        except DUPLICATE_ERRORS as e:
            raise ConflictError(entity_name, str(e)) from e

    async def _set(
        self, collection: str, entity_name: str, key: UUID, fields: dict[str, Any],
    ) -> None:
        """$set fields on one document; a zero match is a logical not-found."""
        try:
            result = await self._db[collection].update_one(
                {"_id": str(key)}, {"$set": fields}, session=self._session,
            )
        except DUPLICATE_ERRORS as e:
            raise ConflictError(entity_name, str(e)) from e
        if result.matched_count == 0:
            raise NotFoundError(entity_name, key)

    async def _replace_associations(
        self,
        collection: str,
        parent_field: str,
        parent_id: UUID,
        child_field: str,
        child_ids: list[UUID],
    ) -> None:
        """Delete every association of the parent, then insert the new set."""
        await self._db[collection].delete_many(
            {parent_field: str(parent_id)}, session=self._session,
        )
        now = utcnow()
        documents = [
            association_document(parent_field, parent_id, child_field, child_id, now)
            for child_id in dict.fromkeys(child_ids)
        ]
        if not documents:
            return
        try:
            await self._db[collection].insert_many(documents, session=self._session)
        except DUPLICATE_ERRORS as e:
            raise ConflictError(collection, str(e)) from e

    @staticmethod
    def _stamp(entity: UserEntity | RoleEntity | PermissionEntity) -> None:
        """Assign id and timestamps the way a relational insert would."""
        now = utcnow()
        if entity.id is None:
            entity.id = uuid4()
        if entity.created_at is None:
            entity.created_at = now
        entity.updated_at = now

    # --- Users ---

    async def create_user(self, user: UserEntity) -> UserEntity:
        """Insert a user document."""
        self._stamp(user)
        await self._insert(USERS, "user", to_document(user))
        return user

    async def update_user(self, user: UserEntity) -> UserEntity:
        """Update profile fields of an existing user."""
        user.updated_at = utcnow()
        await self._set(
            USERS,
            "user",
            user.id,
            {
                "username": user.username,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "is_active": user.is_active,
                "updated_at": user.updated_at,
            },
        )
        return user

    async def update_user_password(self, user_id: UUID, password_hash: str) -> None:
        """Replace a user's password hash."""
        await self._set(
            USERS, "user", user_id, {"password_hash": password_hash, "updated_at": utcnow()},
        )

    async def assign_roles_to_user(self, user_id: UUID, role_ids: list[UUID]) -> None:
        """Replace the user's roles."""
        await self._replace_associations(USER_ROLES, "user_id", user_id, "role_id", role_ids)

    # --- Roles ---

    async def create_role(self, role: RoleEntity) -> RoleEntity:
        """Insert a role document."""
        self._stamp(role)
        await self._insert(ROLES, "role", to_document(role))
        return role

    async def update_role(self, role: RoleEntity) -> RoleEntity:
        """Update an existing role."""
        role.updated_at = utcnow()
        await self._set(
            ROLES,
            "role",
            role.id,
            {"name": role.name, "description": role.description, "updated_at": role.updated_at},
        )
        return role

    async def assign_permissions_to_role(
        self, role_id: UUID, permission_ids: list[UUID],
    ) -> None:
        """Replace the role's permissions."""
        await self._replace_associations(
            ROLE_PERMISSIONS, "role_id", role_id, "permission_id", permission_ids,
        )

    # --- Permissions ---

    async def create_permission(self, permission: PermissionEntity) -> PermissionEntity:
        """Insert a permission document."""
        self._stamp(permission)
        await self._insert(PERMISSIONS, "permission", to_document(permission))
        return permission

    async def update_permission(self, permission: PermissionEntity) -> PermissionEntity:
        """Update an existing permission."""
        permission.updated_at = utcnow()
        await self._set(
            PERMISSIONS,
            "permission",
            permission.id,
            {
                "name": permission.name,
                "description": permission.description,
                "resource": permission.resource,
                "action": permission.action,
                "updated_at": permission.updated_at,
            },
        )
        return permission
