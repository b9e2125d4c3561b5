"""Relational plumbing shared by the SQLAlchemy entity repositories."""
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import delete, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import Select

from core.cache import CacheClient
from models.base import Base
from repositories.exceptions import NotFoundError
from repositories.sql.transaction import SqlTxRepository
from repositories.transaction import TransactionManager, TxRepository

T = TypeVar("T")


class SqlRepository:
    """
    Mixin placed before an entity repository base class.

    Reads open a short-lived session from the shared pool. Direct writes reuse the
    scoped write repository inside ``session_factory.begin()`` so each one is a
    single atomic statement group.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: CacheClient,
        tx_manager: TransactionManager[TxRepository, Any],
    ) -> None:
        super().__init__(cache, tx_manager)
        self._session_factory = session_factory

    async def ping(self) -> None:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))

    async def _direct_write(self, fn: Callable[[TxRepository], Awaitable[T]]) -> T:
        async with self._session_factory.begin() as session:
            return await fn(SqlTxRepository(session))

    async def _standalone_tx(self, fn: Callable[[TxRepository], Awaitable[T]]) -> T:
        # A relational session transaction already spans every statement in fn
        return await self._direct_write(fn)

    async def _first(self, statement: Select) -> Any | None:
        async with self._session_factory() as session:
            return await session.scalar(statement)

    async def _all(self, statement: Select) -> list[Any]:
        async with self._session_factory() as session:
            return list((await session.scalars(statement)).all())

    async def _delete_row(self, model: type[Base], entity: str, key: UUID) -> None:
        """Delete one row by id; foreign keys cascade to association rows."""
        async with self._session_factory.begin() as session:
            result = await session.execute(delete(model).where(model.id == key))
        if result.rowcount == 0:
            raise NotFoundError(entity, key)
