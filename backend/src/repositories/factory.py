"""
Repository factory.

Wires the entity repositories and the transaction manager to the one backend
selected at startup. Consumers receive the backend-neutral base types only.
"""
import logging
from dataclasses import dataclass
from typing import Any

from core.cache import CacheClient
from core.config import Settings
from db.session import Backend, MongoBackend, SqlBackend
from repositories.base import PermissionRepository, RoleRepository, UserRepository
from repositories.mongo import (
    MongoPermissionRepository,
    MongoRoleRepository,
    MongoUserRepository,
    create_mongo_transaction_manager,
)
from repositories.sql import (
    SqlPermissionRepository,
    SqlRoleRepository,
    SqlUserRepository,
    create_sql_transaction_manager,
)
from repositories.transaction import TransactionManager, TxRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Repositories:
    """Everything a service needs from the storage layer."""

    users: UserRepository
    roles: RoleRepository
    permissions: PermissionRepository
    tx_manager: TransactionManager[TxRepository, Any]


class RepositoryFactory:
    """Builds the repository bundle for the configured backend."""

    def __init__(self, settings: Settings, backend: Backend, cache: CacheClient) -> None:
        self._settings = settings
        self._backend = backend
        self._cache = cache

    def create(self) -> Repositories:
        """
        Build repositories bound to the backend handle.

        Raises:
            ValueError: The backend handle does not match ``settings.db_backend``.
        """
        match (self._settings.db_backend, self._backend):
            case ("postgres", SqlBackend(session_factory=session_factory)):
                tx_manager = create_sql_transaction_manager(session_factory)
                repositories = Repositories(
                    users=SqlUserRepository(session_factory, self._cache, tx_manager),
                    roles=SqlRoleRepository(session_factory, self._cache, tx_manager),
                    permissions=SqlPermissionRepository(session_factory, self._cache, tx_manager),
                    tx_manager=tx_manager,
                )
            case ("mongodb", MongoBackend(client=client, database=db)):
                tx_manager = create_mongo_transaction_manager(client, db)
                repositories = Repositories(
                    users=MongoUserRepository(client, db, self._cache, tx_manager),
                    roles=MongoRoleRepository(client, db, self._cache, tx_manager),
                    permissions=MongoPermissionRepository(client, db, self._cache, tx_manager),
                    tx_manager=tx_manager,
                )
            case (configured, backend):
                raise ValueError(
                    f"DB_BACKEND is {configured!r} but the backend handle is "
                    f"{type(backend).__name__}",
                )
        logger.info("Repositories wired to %s backend", self._settings.db_backend)
        return repositories


# Global repository state using a container to avoid global statement
class _RepositoryState:
    """Container for the process-wide repository bundle."""

    repositories: Repositories | None = None


_state = _RepositoryState()


def get_repositories() -> Repositories | None:
    """Get the global repository bundle."""
    return _state.repositories


def set_repositories(repositories: Repositories | None) -> None:
    """Set the global repository bundle."""
    _state.repositories = repositories
