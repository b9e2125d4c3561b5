"""Document-store plumbing shared by the motor entity repositories."""
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorClientSession,
    AsyncIOMotorDatabase,
)
from pymongo.errors import PyMongoError

from core.cache import CacheClient
from repositories.exceptions import SessionStartError
from repositories.mongo.transaction import MongoTxRepository
from repositories.transaction import TransactionManager, TxRepository

T = TypeVar("T")


class MongoRepository:
    """
    Mixin placed before an entity repository base class.

    Single-document writes need no session. Paths that touch several collections
    (cascading deletes, association replacement outside execute_tx) open their own
    session and run inside its transaction, which commits on success and aborts
    on any exception.
    """

    def __init__(
        self,
        client: AsyncIOMotorClient,
        db: AsyncIOMotorDatabase,
        cache: CacheClient,
        tx_manager: TransactionManager[TxRepository, Any],
    ) -> None:
        super().__init__(cache, tx_manager)
        self._client = client
        self._db = db

    async def _in_session(self, fn: Callable[[AsyncIOMotorClientSession], Awaitable[T]]) -> T:
        try:
            session = await self._client.start_session()
        except PyMongoError as e:
            raise SessionStartError(f"failed to start session: {e}") from e
        async with session:
            async with session.start_transaction():
                return await fn(session)

    async def ping(self) -> None:
        await self._db.command("ping")

    async def _direct_write(self, fn: Callable[[TxRepository], Awaitable[T]]) -> T:
        return await fn(MongoTxRepository(self._db))

    async def _standalone_tx(self, fn: Callable[[TxRepository], Awaitable[T]]) -> T:
        return await self._in_session(lambda session: fn(MongoTxRepository(self._db, session)))

    async def _find(
        self,
        collection: str,
        query: dict[str, Any],
        sort: list[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        cursor = self._db[collection].find(query)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=None)

    async def _linked_ids(
        self, collection: str, parent_field: str, parent_ids: list[str], child_field: str,
    ) -> list[str]:
        """Child ids referenced from an association collection, without duplicates."""
        links = await self._find(collection, {parent_field: {"$in": parent_ids}})
        return list(dict.fromkeys(link[child_field] for link in links))
