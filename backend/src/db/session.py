"""
Storage backend handles.

Exactly one backend is active per process. open_backend() resolves the configured
one into a tagged handle (SqlBackend or MongoBackend) at startup, so nothing
downstream has to recover a concrete client type at runtime.
"""
import logging
from dataclasses import dataclass

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import Settings
from models.base import Base
from repositories.exceptions import BackendUnavailableError
from repositories.mongo.documents import ensure_indexes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SqlBackend:
    """Relational backend: one engine (connection pool) per process."""

    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]


@dataclass(frozen=True)
class MongoBackend:
    """Document backend: one motor client per process."""

    client: AsyncIOMotorClient
    database: AsyncIOMotorDatabase


Backend = SqlBackend | MongoBackend


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:  # noqa: ANN001
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_sql_backend(settings: Settings) -> SqlBackend:
    """Build the engine and session factory without connecting."""
    url = make_url(settings.database_url)
    engine_kwargs = {}
    if url.get_backend_name() != "sqlite":
        engine_kwargs = {
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
        }
    engine = create_async_engine(url, echo=False, pool_pre_ping=True, **engine_kwargs)
    if url.get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return SqlBackend(engine=engine, session_factory=session_factory)


def create_mongo_backend(
    settings: Settings, client: AsyncIOMotorClient | None = None,
) -> MongoBackend:
    """Build the motor client (or wrap a given one) without connecting."""
    if client is None:
        client = AsyncIOMotorClient(settings.mongodb_url, tz_aware=True)
    return MongoBackend(client=client, database=client[settings.mongodb_database])


async def open_backend(
    settings: Settings, mongo_client: AsyncIOMotorClient | None = None,
) -> Backend:
    """
    Connect to the configured backend and prepare its schema.

    The relational backend creates tables from model metadata; the document
    backend creates its unique indexes.

    Raises:
        BackendUnavailableError: The backend could not be reached.
    """
    if settings.db_backend == "postgres":
        backend = create_sql_backend(settings)
        try:
            async with backend.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            logger.exception("Failed to connect to relational backend")
            await backend.engine.dispose()
            raise BackendUnavailableError(f"relational backend unavailable: {e}") from e
        logger.info("Relational backend ready")
        return backend

    backend = create_mongo_backend(settings, mongo_client)
    try:
        await backend.database.command("ping")
        await ensure_indexes(backend.database)
    except PyMongoError as e:
        logger.exception("Failed to connect to document backend")
        backend.client.close()
        raise BackendUnavailableError(f"document backend unavailable: {e}") from e
    logger.info("Document backend ready (database=%s)", settings.mongodb_database)
    return backend


async def close_backend(backend: Backend) -> None:
    """Release the pool or client."""
    match backend:
        case SqlBackend(engine=engine):
            await engine.dispose()
        case MongoBackend(client=client):
            client.close()
