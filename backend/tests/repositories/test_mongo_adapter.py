"""Tests specific to the document-store transaction adapter and repositories."""
from uuid import UUID

import pytest
from pymongo.errors import ConnectionFailure, OperationFailure

from repositories.exceptions import (
    NotFoundError,
    SessionStartError,
    TransactionBeginError,
    TransactionCommitError,
    TransactionError,
)
from repositories.factory import Repositories
from repositories.mongo.documents import (
    PERMISSIONS,
    ROLE_PERMISSIONS,
    USER_ROLES,
    USERS,
    from_document,
    to_document,
)
from repositories.mongo.transaction import MongoTransaction, MongoTxRepository, mongo_begin_tx
from repositories.transaction import TxRepository
from schemas.entities import UserEntity
from tests.builders import new_permission, new_role, new_user
from tests.fakes import FakeMotorClient


def collection(client: FakeMotorClient, name: str) -> list[dict]:
    return client["test_user_api"][name].documents


# =============================================================================
# Session lifecycle
# =============================================================================


class TestMongoBeginTx:
    """Beginning a transaction maps onto start_session + start_transaction."""

    async def test__begin_tx__session_start_failure(self, mongo_client: FakeMotorClient) -> None:
        mongo_client.start_session_error = ConnectionFailure("no primary")

        with pytest.raises(SessionStartError, match="failed to start session"):
            await mongo_begin_tx(mongo_client)()

    async def test__begin_tx__transaction_start_failure_ends_session(
        self, mongo_client: FakeMotorClient,
    ) -> None:
        mongo_client.start_transaction_error = OperationFailure(
            "Transaction numbers are only allowed on a replica set member",
        )

        with pytest.raises(TransactionBeginError, match="failed to start transaction") as exc_info:
            await mongo_begin_tx(mongo_client)()

        assert not isinstance(exc_info.value, SessionStartError)
        assert mongo_client.sessions[0].ended is True

    async def test__execute_tx__session_start_failure_writes_nothing(
        self, mongo_repos: Repositories, mongo_client: FakeMotorClient,
    ) -> None:
        mongo_client.start_session_error = ConnectionFailure("no primary")

        with pytest.raises(SessionStartError):
            await mongo_repos.tx_manager.execute_tx(
                lambda tx: tx.create_user(new_user("alice")),
            )

        assert collection(mongo_client, USERS) == []


class TestMongoTransactionHandle:
    """Commit and rollback both end the session."""

    async def test__commit__commits_and_ends_session(self, mongo_client: FakeMotorClient) -> None:
        tx = await mongo_begin_tx(mongo_client)()
        session = mongo_client.sessions[0]

        await tx.commit()

        assert session.commits == 1
        assert session.ended is True

    async def test__rollback__aborts_and_ends_session(
        self, mongo_client: FakeMotorClient,
    ) -> None:
        tx = await mongo_begin_tx(mongo_client)()
        session = mongo_client.sessions[0]

        await tx.rollback()

        assert session.aborts == 1
        assert session.ended is True

    async def test__session__unusable_after_commit(self, mongo_client: FakeMotorClient) -> None:
        tx = await mongo_begin_tx(mongo_client)()
        await tx.commit()

        with pytest.raises(TransactionError):
            _ = tx.session

    async def test__commit_failure__still_ends_session(
        self, mongo_client: FakeMotorClient,
    ) -> None:
        tx = await mongo_begin_tx(mongo_client)()
        mongo_client.commit_error = OperationFailure("WriteConflict")

        with pytest.raises(OperationFailure):
            await tx.commit()

        assert isinstance(tx, MongoTransaction)
        assert mongo_client.sessions[0].ended is True

    async def test__execute_tx__commit_failure_is_reported(
        self, mongo_repos: Repositories, mongo_client: FakeMotorClient,
    ) -> None:
        mongo_client.commit_error = OperationFailure("WriteConflict")

        with pytest.raises(TransactionCommitError):
            await mongo_repos.tx_manager.execute_tx(
                lambda tx: tx.create_role(new_role("admin")),
            )

        assert mongo_client.sessions[-1].ended is True


# =============================================================================
# Scoped writes
# =============================================================================


class TestMongoTxRepository:
    """Writes issued through execute_tx carry the transaction's session."""

    async def test__execute_tx__every_write_carries_session(
        self, mongo_repos: Repositories, mongo_client: FakeMotorClient,
    ) -> None:
        async def create_user_with_role(tx: TxRepository) -> None:
            role = await tx.create_role(new_role("admin"))
            user = await tx.create_user(new_user("alice"))
            await tx.assign_roles_to_user(user.id, [role.id])

        mongo_client.writes.clear()
        await mongo_repos.tx_manager.execute_tx(create_user_with_role)

        session = mongo_client.sessions[-1]
        assert [op for op, _, _ in mongo_client.writes] == [
            "insert_one", "insert_one", "delete_many", "insert_many",
        ]
        assert all(s is session for _, _, s in mongo_client.writes)

    async def test__create_user__stores_string_id_and_timestamps(
        self, mongo_repos: Repositories, mongo_client: FakeMotorClient,
    ) -> None:
        user = await mongo_repos.users.create(new_user("alice"))

        [document] = collection(mongo_client, USERS)
        assert document["_id"] == str(user.id)
        assert isinstance(document["_id"], str)
        assert document["created_at"] == user.created_at
        assert document["updated_at"] == user.updated_at
        assert "roles" not in document
        assert "id" not in document

    async def test__update_user__refreshes_updated_at_only(
        self, mongo_repos: Repositories, mongo_client: FakeMotorClient,
    ) -> None:
        user = await mongo_repos.users.create(new_user("alice"))
        created_at = user.created_at
        user.last_name = "Liddell"

        await mongo_repos.users.update(user)

        [document] = collection(mongo_client, USERS)
        assert document["last_name"] == "Liddell"
        assert document["created_at"] == created_at
        assert document["updated_at"] >= created_at

    async def test__assign_permissions__no_session_outside_execute_tx(
        self, mongo_client: FakeMotorClient, mongo_repos: Repositories,
    ) -> None:
        repo = MongoTxRepository(mongo_client["test_user_api"])
        role = await repo.create_role(new_role("admin"))
        permission = await repo.create_permission(new_permission("doc", "read"))

        await repo.assign_permissions_to_role(role.id, [permission.id])

        [link] = collection(mongo_client, ROLE_PERMISSIONS)
        assert link["role_id"] == str(role.id)
        assert link["permission_id"] == str(permission.id)
        assert all(s is None for _, _, s in mongo_client.writes)


# =============================================================================
# Cascading deletes
# =============================================================================


class TestMongoCascadingDelete:
    """Deletes remove association documents in the same session."""

    async def test__delete_user__removes_role_links_in_one_session(
        self, mongo_repos: Repositories, mongo_client: FakeMotorClient,
    ) -> None:
        role = await mongo_repos.roles.create(new_role("admin"))
        user = await mongo_repos.users.create(new_user("alice"))
        await mongo_repos.users.assign_roles_to_user(user.id, [role.id])
        mongo_client.writes.clear()

        await mongo_repos.users.delete(user.id)

        assert collection(mongo_client, USERS) == []
        assert collection(mongo_client, USER_ROLES) == []
        sessions = {id(s) for _, _, s in mongo_client.writes}
        assert len(sessions) == 1
        assert mongo_client.sessions[-1].commits == 1

    async def test__delete_permission__missing_id_aborts(
        self, mongo_repos: Repositories, mongo_client: FakeMotorClient,
    ) -> None:
        permission = await mongo_repos.permissions.create(new_permission("doc", "read"))
        await mongo_repos.permissions.delete(permission.id)

        with pytest.raises(NotFoundError, match="permission not found"):
            await mongo_repos.permissions.delete(permission.id)

        assert mongo_client.sessions[-1].aborts == 1
        assert mongo_client.sessions[-1].ended is True
        assert collection(mongo_client, PERMISSIONS) == []

    async def test__delete__session_start_failure(
        self, mongo_repos: Repositories, mongo_client: FakeMotorClient,
    ) -> None:
        role = await mongo_repos.roles.create(new_role("admin"))
        mongo_client.start_session_error = ConnectionFailure("no primary")

        with pytest.raises(SessionStartError):
            await mongo_repos.roles.delete(role.id)


# =============================================================================
# Document mapping
# =============================================================================


class TestDocumentMapping:
    """Entity <-> document conversion."""

    def test__to_document__uses_string_id_and_drops_associations(self) -> None:
        user = new_user("alice", id=UUID("00000000-0000-4000-8000-000000000001"))
        user.roles = [new_role("admin")]

        document = to_document(user)

        assert document["_id"] == "00000000-0000-4000-8000-000000000001"
        assert "roles" not in document

    def test__from_document__parses_uuid(self) -> None:
        document = to_document(new_user("alice", id=UUID("00000000-0000-4000-8000-000000000002")))

        user = from_document(UserEntity, document)

        assert user.id == UUID("00000000-0000-4000-8000-000000000002")
        assert user.username == "alice"
