"""
Backend-agnostic transaction manager.

Each storage backend supplies two callables: one that begins a transaction and
returns an executor handle, and one that builds a scoped write repository bound to
that handle. The manager owns the begin / callback / commit-or-rollback sequence so
the same logic drives both backends.
"""
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, Protocol, TypeVar
from uuid import UUID

from repositories.exceptions import (
    TransactionBeginError,
    TransactionCommitError,
    TransactionError,
    TransactionRollbackError,
)
from schemas.entities import PermissionEntity, RoleEntity, UserEntity

logger = logging.getLogger(__name__)


class TransactionExecutor(Protocol):
    """Handle for one in-flight atomic unit of work against one backend."""

    async def commit(self) -> None:
        """Make the unit of work durable and release the handle."""
        ...

    async def rollback(self) -> None:
        """Discard the unit of work and release the handle."""
        ...


class TxRepository(Protocol):
    """
    Scoped write repository: the mutating operations valid inside one transaction.

    Every implementation issues its writes through the transaction it was built
    from, never directly against the pool/client.
    """

    async def create_user(self, user: UserEntity) -> UserEntity:
        """Insert a user, assigning id and timestamps."""
        ...

    async def update_user(self, user: UserEntity) -> UserEntity:
        """Update a user's profile fields. Raises NotFoundError if absent."""
        ...

    async def update_user_password(self, user_id: UUID, password_hash: str) -> None:
        """Replace a user's password hash. Raises NotFoundError if absent."""
        ...

    async def assign_roles_to_user(self, user_id: UUID, role_ids: list[UUID]) -> None:
        """Replace the user's role set (delete all, then insert each)."""
        ...

    async def create_role(self, role: RoleEntity) -> RoleEntity:
        """Insert a role, assigning id and timestamps."""
        ...

    async def update_role(self, role: RoleEntity) -> RoleEntity:
        """Update a role. Raises NotFoundError if absent."""
        ...

    async def assign_permissions_to_role(
        self, role_id: UUID, permission_ids: list[UUID],
    ) -> None:
        """Replace the role's permission set (delete all, then insert each)."""
        ...

    async def create_permission(self, permission: PermissionEntity) -> PermissionEntity:
        """Insert a permission, assigning id and timestamps."""
        ...

    async def update_permission(self, permission: PermissionEntity) -> PermissionEntity:
        """Update a permission. Raises NotFoundError if absent."""
        ...


RepoT = TypeVar("RepoT")
ExecT = TypeVar("ExecT", bound=TransactionExecutor)
ResultT = TypeVar("ResultT")


class TransactionManager(Generic[RepoT, ExecT]):
    """
    Runs a callback atomically against whichever backend supplied the callables.

    Safe for concurrent use: it holds no per-call state, and each execute_tx() call
    gets its own executor that is never reused after the call returns.
    """

    def __init__(
        self,
        begin_tx: Callable[[], Awaitable[ExecT]],
        create_repo: Callable[[ExecT], RepoT],
    ) -> None:
        self._begin_tx = begin_tx
        self._create_repo = create_repo

    async def execute_tx(self, fn: Callable[[RepoT], Awaitable[ResultT]]) -> ResultT:
        """
        Begin a transaction, run ``fn`` with a scoped repository, then commit.

        If ``fn`` raises (including on task cancellation) the transaction is rolled
        back and the exception propagates unchanged. If the rollback also fails,
        TransactionRollbackError is raised carrying both errors.

        Args:
            fn: Coroutine function receiving the scoped write repository.

        Returns:
            Whatever ``fn`` returned.

        Raises:
            TransactionBeginError: The transaction could not be started.
            TransactionCommitError: Commit failed after ``fn`` succeeded.
            TransactionRollbackError: ``fn`` failed and so did the rollback.
        """
        try:
            executor = await self._begin_tx()
        except TransactionError:
            raise
        except Exception as e:
            raise TransactionBeginError(f"failed to begin transaction: {e}") from e

        repo = self._create_repo(executor)

        try:
            result = await fn(repo)
        except BaseException as exc:
            rollback_error = await self._rollback(executor)
            if rollback_error is not None:
                if isinstance(exc, Exception):
                    raise TransactionRollbackError(exc, rollback_error) from rollback_error
                # Cancellation propagates unchanged; the rollback failure is attached to it
                exc.add_note(f"transaction rollback also failed: {rollback_error!r}")
                exc.__context__ = rollback_error
            raise

        try:
            await executor.commit()
        except Exception as e:
            raise TransactionCommitError(f"failed to commit transaction: {e}") from e

        return result

    async def _rollback(self, executor: ExecT) -> Exception | None:
        """Roll back, returning the rollback failure instead of raising it."""
        try:
            await executor.rollback()
        except Exception as e:
            logger.error("Transaction rollback failed: %s", e)
            return e
        return None
