"""
Session management coordinating adapters, hooks and document persistence.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Type, TypeVar, Union

from ..adapters import (
    DEFAULT_DSN_ENV_VAR,
    AdapterConnectionError,
    AdapterError,
    AdapterExecutionError,
    ConnectionConfig,
    DocumentAdapter,
    create_adapter,
)
from ..core.document import Document, ModelConfigurationError
from ..query.populate import parse_populate, populate
from ..query.queryset import QueryManager
from ..utils import get_logger

if TYPE_CHECKING:
    from ..hooks import HookDispatcher


DEFAULT_DSN = "memory://default"

TDocument = TypeVar("TDocument", bound=Document)


class CascadeError(AdapterError):
    """Raised when a dependent delete fails; the triggering delete does not happen."""


class Session:
    """
    Explicit handle to one database connection.

    Every persistence call takes the session it should run against, so tests
    can hold several isolated sessions side by side.
    """

    def __init__(
        self,
        adapter: Optional[DocumentAdapter] = None,
        *,
        connection_config: Optional[ConnectionConfig] = None,
        dsn: Optional[str] = None,
    ) -> None:
        if connection_config is not None and dsn is not None:
            raise ValueError("Pass either connection_config or dsn, not both.")
        if connection_config is None:
            connection_config = ConnectionConfig.from_dsn(dsn or DEFAULT_DSN)
        self.connection_config = connection_config
        self.adapter: DocumentAdapter = adapter or create_adapter(connection_config)
        self.connected = False
        from ..hooks import hooks

        self.hooks: "HookDispatcher" = hooks
        self.logger = get_logger("persistence.session")

    @classmethod
    def from_env(cls, env_var: str = DEFAULT_DSN_ENV_VAR) -> "Session":
        return cls(connection_config=ConnectionConfig.from_env(env_var))

    # ------------------------------------------------------------------ #
    # Connection management
    # ------------------------------------------------------------------ #
    async def connect(self) -> "Session":
        if self.connected:
            return self
        try:
            await self.adapter.connect(self.connection_config)
        except AdapterConnectionError:
            self.logger.error(
                "Could not connect to %s", self.connection_config.descriptive_label()
            )
            raise
        self.connected = True
        return self

    async def close(self) -> None:
        if not self.connected:
            return
        try:
            await self.adapter.close()
        finally:
            self.connected = False

    async def __aenter__(self) -> "Session":
        return await self.connect()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def query(self, model: Type[TDocument]) -> QueryManager:
        return QueryManager(self, model)

    async def populate(
        self, documents: Union[Document, Sequence[Document], None], *specs: Any
    ) -> Any:
        """
        Populate reference paths on already-loaded documents and return them.
        """
        if documents is None:
            return None
        targets = [documents] if isinstance(documents, Document) else list(documents)
        await populate(self, targets, parse_populate(list(specs)))
        return documents

    async def drop_collection(self, model_or_name: Union[Type[Document], str]) -> None:
        name = model_or_name if isinstance(model_or_name, str) else model_or_name._meta.collection
        await self.adapter.drop_collection(name)

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #
    async def save(self, instance: TDocument) -> TDocument:
        """
        Validate and persist ``instance``: inserted when new, otherwise only
        changed fields are written.
        """
        self._check_document(instance)
        created = instance.is_new
        await self.hooks.fire("before_validate", instance, session=self)
        instance.full_clean()
        await self.hooks.fire("after_validate", instance, session=self)
        await self.hooks.fire("before_save", instance, session=self, created=created)

        collection = instance._meta.collection
        if created:
            await self.adapter.insert_one(collection, instance.to_document())
        else:
            pk_key = instance._meta.storage_key("pk")
            changes = {
                key: value for key, value in instance.changed_fields().items() if key != pk_key
            }
            if not changes:
                return instance
            matched = await self.adapter.update_one(
                collection, {pk_key: instance.pk}, {"$set": changes}
            )
            if not matched:
                raise AdapterExecutionError(
                    f"{instance.__class__.__name__} {instance.pk} no longer exists in '{collection}'"
                )

        instance.mark_persisted()
        self.logger.debug(
            "%s %s %s",
            "Inserted" if created else "Updated",
            instance.__class__.__name__,
            instance.pk,
            extra={"collection": collection},
        )
        await self.hooks.fire("after_save", instance, session=self, created=created)
        return instance

    async def save_all(self, *instances: Document) -> List[Document]:
        """
        Save several documents concurrently; the first failure propagates.
        """
        return list(await asyncio.gather(*(self.save(instance) for instance in instances)))

    async def remove(self, instance: Document) -> None:
        self._check_document(instance)
        await self.hooks.fire("before_delete", instance, session=self)
        collection = instance._meta.collection
        pk_key = instance._meta.storage_key("pk")
        await self.adapter.delete_one(collection, {pk_key: instance.pk})
        self.logger.debug(
            "Removed %s %s", instance.__class__.__name__, instance.pk, extra={"collection": collection}
        )
        await self.hooks.fire("after_delete", instance, session=self)

    @staticmethod
    def _check_document(instance: Any) -> None:
        if not isinstance(instance, Document) or instance._meta.abstract:
            raise ModelConfigurationError(
                f"Only concrete Document instances can be persisted, received {type(instance).__name__}"
            )
