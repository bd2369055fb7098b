"""
MongoDB adapter built on PyMongo's native asyncio client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from ..utils import get_logger, resolve_slow_query_ms, time_call
from .base import (
    AdapterConfigurationError,
    AdapterConnectionError,
    AdapterExecutionError,
    ConnectionConfig,
    DocumentAdapter,
    Filter,
    Sort,
    Update,
)


@dataclass
class MongoConnectionState:
    client: AsyncMongoClient
    config: ConnectionConfig
    database: str


class MongoAdapter(DocumentAdapter):
    """
    Adapter wrapping :class:`pymongo.AsyncMongoClient`.
    """

    def __init__(self, slow_query_ms: int | None = None) -> None:
        self._state: MongoConnectionState | None = None
        self.logger = get_logger("adapters.mongo")
        self.slow_query_ms = resolve_slow_query_ms(default=100, override=slow_query_ms)

    # ------------------------------------------------------------------ #
    # Connection management
    # ------------------------------------------------------------------ #
    async def connect(self, config: ConnectionConfig) -> None:
        if not config.database:
            raise AdapterConfigurationError(
                "MongoDB DSN must name a database, e.g. mongodb://localhost/users_test"
            )

        options = dict(config.options or {})
        if config.timeout is not None:
            options.setdefault("serverSelectionTimeoutMS", int(config.timeout * 1000))

        self.logger.info("Connecting to MongoDB %s", config.descriptive_label())
        client: AsyncMongoClient = AsyncMongoClient(config.client_url(), **options)
        try:
            await client.admin.command("ping")
        except PyMongoError as exc:
            await client.close()
            raise AdapterConnectionError(
                f"Failed to connect to MongoDB at {config.redacted_dsn()}"
            ) from exc

        self._state = MongoConnectionState(client, config, config.database)

    async def close(self) -> None:
        if self._state:
            try:
                await self._state.client.close()
            finally:
                self._state = None

    def _collection(self, name: str):
        if not self._state:
            raise AdapterConnectionError("MongoAdapter is not connected.")
        return self._state.client[self._state.database][name]

    def _timed(self, name: str, collection: str, filter: Filter | None = None):
        return time_call(
            name,
            self.logger,
            collection=collection,
            filter=filter,
            threshold_ms=self.slow_query_ms,
        )

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #
    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> Any:
        coll = self._collection(collection)
        try:
            with self._timed("mongo.insert_one", collection):
                result = await coll.insert_one(dict(document))
        except PyMongoError as exc:
            raise AdapterExecutionError(f"insert_one on '{collection}' failed") from exc
        return result.inserted_id

    async def find(
        self,
        collection: str,
        filter: Filter,
        *,
        sort: Sort | None = None,
        skip: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        coll = self._collection(collection)
        cursor = coll.find(dict(filter))
        if sort:
            cursor = cursor.sort(list(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        try:
            with self._timed("mongo.find", collection, filter):
                return await cursor.to_list(length=None)
        except PyMongoError as exc:
            raise AdapterExecutionError(f"find on '{collection}' failed") from exc

    async def find_one(self, collection: str, filter: Filter) -> dict[str, Any] | None:
        coll = self._collection(collection)
        try:
            with self._timed("mongo.find_one", collection, filter):
                return await coll.find_one(dict(filter))
        except PyMongoError as exc:
            raise AdapterExecutionError(f"find_one on '{collection}' failed") from exc

    async def count(self, collection: str, filter: Filter) -> int:
        coll = self._collection(collection)
        try:
            with self._timed("mongo.count", collection, filter):
                return await coll.count_documents(dict(filter))
        except PyMongoError as exc:
            raise AdapterExecutionError(f"count on '{collection}' failed") from exc

    async def update_one(self, collection: str, filter: Filter, update: Update) -> int:
        coll = self._collection(collection)
        try:
            with self._timed("mongo.update_one", collection, filter):
                result = await coll.update_one(dict(filter), dict(update))
        except PyMongoError as exc:
            raise AdapterExecutionError(f"update_one on '{collection}' failed") from exc
        return result.matched_count

    async def update_many(self, collection: str, filter: Filter, update: Update) -> int:
        coll = self._collection(collection)
        try:
            with self._timed("mongo.update_many", collection, filter):
                result = await coll.update_many(dict(filter), dict(update))
        except PyMongoError as exc:
            raise AdapterExecutionError(f"update_many on '{collection}' failed") from exc
        return result.matched_count

    async def find_one_and_update(
        self, collection: str, filter: Filter, update: Update, *, return_new: bool = False
    ) -> dict[str, Any] | None:
        coll = self._collection(collection)
        return_document = ReturnDocument.AFTER if return_new else ReturnDocument.BEFORE
        try:
            with self._timed("mongo.find_one_and_update", collection, filter):
                return await coll.find_one_and_update(
                    dict(filter), dict(update), return_document=return_document
                )
        except PyMongoError as exc:
            raise AdapterExecutionError(f"find_one_and_update on '{collection}' failed") from exc

    async def find_one_and_delete(self, collection: str, filter: Filter) -> dict[str, Any] | None:
        coll = self._collection(collection)
        try:
            with self._timed("mongo.find_one_and_delete", collection, filter):
                return await coll.find_one_and_delete(dict(filter))
        except PyMongoError as exc:
            raise AdapterExecutionError(f"find_one_and_delete on '{collection}' failed") from exc

    async def delete_one(self, collection: str, filter: Filter) -> int:
        coll = self._collection(collection)
        try:
            with self._timed("mongo.delete_one", collection, filter):
                result = await coll.delete_one(dict(filter))
        except PyMongoError as exc:
            raise AdapterExecutionError(f"delete_one on '{collection}' failed") from exc
        return result.deleted_count

    async def delete_many(self, collection: str, filter: Filter) -> int:
        coll = self._collection(collection)
        try:
            with self._timed("mongo.delete_many", collection, filter):
                result = await coll.delete_many(dict(filter))
        except PyMongoError as exc:
            raise AdapterExecutionError(f"delete_many on '{collection}' failed") from exc
        return result.deleted_count

    async def drop_collection(self, collection: str) -> None:
        if not self._state:
            raise AdapterConnectionError("MongoAdapter is not connected.")
        try:
            await self._state.client[self._state.database].drop_collection(collection)
        except PyMongoError as exc:
            raise AdapterExecutionError(f"drop_collection '{collection}' failed") from exc
