"""
Exceptions raised by repositories and the transaction manager.

Both storage backends normalize their native signals into these types, so callers
cannot tell which backend is active from the errors they see.
"""


class RepositoryError(Exception):
    """Base class for repository-layer errors."""


class NotFoundError(RepositoryError):
    """
    Raised when a requested entity is absent.

    Covers "no rows" on the relational backend and "no document matched" on the
    document backend, including zero-row updates and deletes.
    """

    def __init__(self, entity: str, key: object) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class ConflictError(RepositoryError):
    """Raised when a write violates a unique (or referential) constraint."""

    def __init__(self, entity: str, detail: str) -> None:
        self.entity = entity
        self.detail = detail
        super().__init__(f"{entity} conflicts with existing data: {detail}")


class BackendUnavailableError(RepositoryError):
    """Raised when the storage backend cannot be reached."""


class TransactionError(RepositoryError):
    """Raised when beginning, committing or rolling back a transaction fails."""


class TransactionBeginError(TransactionError):
    """Raised when a transaction could not be started."""


class SessionStartError(TransactionBeginError):
    """Raised when a document-store session could not be started."""


class TransactionCommitError(TransactionError):
    """Raised when commit fails; the writes did not persist."""


class TransactionRollbackError(TransactionError):
    """
    Raised when a transaction callback failed and the rollback failed too.

    Carries both failures so neither is lost.
    """

    def __init__(self, original: BaseException, rollback_error: BaseException) -> None:
        self.original = original
        self.rollback_error = rollback_error
        super().__init__(f"tx failed: {original}, unable to rollback: {rollback_error}")
