"""Pytest fixtures for testing."""
import os

# Settings are validated when api.main is imported; a relational URL must exist first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")

from collections.abc import AsyncGenerator, Generator  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from docker.errors import DockerException  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from testcontainers.postgres import PostgresContainer  # noqa: E402

from core.cache import CacheClient  # noqa: E402
from core.config import Settings  # noqa: E402
from db.session import Backend, MongoBackend, SqlBackend, close_backend, open_backend  # noqa: E402
from models.base import Base  # noqa: E402
from repositories.factory import Repositories, RepositoryFactory  # noqa: E402
from tests.fakes import FakeMotorClient, FakeRedis  # noqa: E402


def sqlite_url(tmp_path: Path) -> str:
    """File-backed SQLite so every pooled connection sees the same database."""
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer]:
    """Start a PostgreSQL container for the test session; its tests skip without Docker."""
    try:
        container = PostgresContainer("postgres:16", driver="asyncpg").start()
    except DockerException as e:
        pytest.skip(f"Docker is not available for PostgreSQL tests: {e}")
    yield container
    container.stop()


@pytest.fixture
def postgres_settings(postgres_container: PostgresContainer) -> Settings:
    """Settings selecting the relational backend on the PostgreSQL container."""
    return Settings(db_backend="postgres", database_url=postgres_container.get_connection_url())


@pytest.fixture
def fake_redis() -> FakeRedis:
    """In-memory Redis double."""
    return FakeRedis()


@pytest.fixture
async def cache(fake_redis: FakeRedis) -> AsyncGenerator[CacheClient]:
    """Connected cache client backed by the Redis double."""
    client = CacheClient("redis://fake:6379", default_ttl=3600)
    await client.connect(client=fake_redis)
    yield client
    await client.close()


@pytest.fixture
def sql_settings(tmp_path: Path) -> Settings:
    """Settings selecting the relational backend on a temporary SQLite file."""
    return Settings(db_backend="postgres", database_url=sqlite_url(tmp_path))


@pytest.fixture
def mongo_settings() -> Settings:
    """Settings selecting the document backend."""
    return Settings(db_backend="mongodb", mongodb_database="test_user_api")


@pytest.fixture
def mongo_client() -> FakeMotorClient:
    """In-memory motor client double."""
    return FakeMotorClient()


@pytest.fixture
async def sql_backend(sql_settings: Settings) -> AsyncGenerator[SqlBackend]:
    """Relational backend with tables created."""
    backend = await open_backend(sql_settings)
    yield backend
    await close_backend(backend)


@pytest.fixture
async def mongo_backend(
    mongo_settings: Settings, mongo_client: FakeMotorClient,
) -> AsyncGenerator[MongoBackend]:
    """Document backend with indexes created."""
    backend = await open_backend(mongo_settings, mongo_client=mongo_client)
    yield backend
    await close_backend(backend)


@pytest.fixture
def sql_repos(
    sql_settings: Settings, sql_backend: SqlBackend, cache: CacheClient,
) -> Repositories:
    """Repositories wired to the relational backend."""
    return RepositoryFactory(sql_settings, sql_backend, cache).create()


@pytest.fixture
def mongo_repos(
    mongo_settings: Settings, mongo_backend: MongoBackend, cache: CacheClient,
) -> Repositories:
    """Repositories wired to the document backend."""
    return RepositoryFactory(mongo_settings, mongo_backend, cache).create()


@pytest.fixture(params=["sqlite", "postgres", "mongodb"])
async def backend_name(request: pytest.FixtureRequest) -> str:
    """
    Parametrizes a test over every storage backend.

    "sqlite" runs the relational code on aiosqlite for fast feedback; "postgres"
    runs the same code on asyncpg against a real server.
    """
    return request.param


@pytest.fixture
async def repos(
    request: pytest.FixtureRequest,
    backend_name: str,
    tmp_path: Path,
    cache: CacheClient,
) -> AsyncGenerator[Repositories]:
    """Repositories for whichever backend the test is parametrized with."""
    backend: Backend
    if backend_name == "sqlite":
        settings = Settings(db_backend="postgres", database_url=sqlite_url(tmp_path))
        backend = await open_backend(settings)
    elif backend_name == "postgres":
        settings = request.getfixturevalue("postgres_settings")
        backend = await open_backend(settings)
    else:
        settings = Settings(db_backend="mongodb", mongodb_database="test_user_api")
        backend = await open_backend(settings, mongo_client=FakeMotorClient())
    yield RepositoryFactory(settings, backend, cache).create()
    if backend_name == "postgres":
        # The container outlives the test; drop everything it wrote
        async with backend.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await close_backend(backend)


@pytest.fixture
async def client(sql_repos: Repositories) -> AsyncGenerator[AsyncClient]:
    """Create a test client with the repository bundle overridden."""
    from api.dependencies import get_repos
    from api.main import app

    app.dependency_overrides[get_repos] = lambda: sql_repos

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
