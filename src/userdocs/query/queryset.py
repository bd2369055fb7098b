"""
QuerySet implementation providing a chainable, awaitable query API.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, AsyncIterator, Generator, List, Mapping, Optional, Tuple

from ..core.document import ModelConfigurationError
from ..utils import get_logger
from .compiler import FilterCompiler, compile_update
from .expressions import Q
from .populate import PopulateSpec, parse_populate, populate

if TYPE_CHECKING:
    from ..core.document import Document
    from ..persistence.session import Session


class QuerySet:
    """
    Lazy query against one collection.

    Nothing runs until the queryset is awaited (``await User.find(session)``)
    or iterated with ``async for``. A queryset built by ``find_one`` or
    ``find_by_id`` resolves to a single document or ``None``.
    """

    def __init__(
        self,
        model: type["Document"],
        session: "Session",
        *,
        filters: Tuple[Any, ...] = (),
        ordering: Tuple[str, ...] = (),
        skip: Optional[int] = None,
        limit: Optional[int] = None,
        populate: Tuple[PopulateSpec, ...] = (),
        single: bool = False,
    ) -> None:
        self.model = model
        self.session = session
        self._filters = filters
        self._ordering = ordering
        self._skip = skip
        self._limit = limit
        self._populate = populate
        self._single = single

    # Public API --------------------------------------------------------
    def filter(self, filter: Q | Mapping[str, Any] | None = None, **lookups: Any) -> "QuerySet":
        added = tuple(f for f in (filter, Q(**lookups) if lookups else None) if f is not None)
        return self._clone(filters=self._filters + added)

    def exclude(self, **lookups: Any) -> "QuerySet":
        return self._clone(filters=self._filters + (~Q(**lookups),))

    def order_by(self, *fields: str) -> "QuerySet":
        return self._clone(ordering=tuple(fields))

    def skip(self, value: int) -> "QuerySet":
        if value < 0:
            raise ValueError("skip() requires a non-negative value.")
        return self._clone(skip=value)

    def limit(self, value: int) -> "QuerySet":
        if value < 0:
            raise ValueError("limit() requires a non-negative value.")
        return self._clone(limit=value)

    def populate(self, *specs: Any) -> "QuerySet":
        if not specs:
            raise ValueError("populate() requires at least one path.")
        parsed = tuple(parse_populate(list(specs)))
        return self._clone(populate=self._populate + parsed)

    def first(self) -> "QuerySet":
        return self._clone(single=True)

    def compiled_filter(self) -> dict[str, Any]:
        return FilterCompiler(self.model).combine(*self._filters)

    def compiled_sort(self) -> List[Tuple[str, int]]:
        sort = []
        for name in self._ordering:
            direction = -1 if name.startswith("-") else 1
            sort.append((self.model._meta.storage_key(name.lstrip("-+")), direction))
        return sort

    async def count(self) -> int:
        return await self.session.adapter.count(self.model._meta.collection, self.compiled_filter())

    async def all(self) -> List["Document"]:
        limit = 1 if self._single else self._limit
        raw = await self.session.adapter.find(
            self.model._meta.collection,
            self.compiled_filter(),
            sort=self.compiled_sort() or None,
            skip=self._skip,
            limit=limit,
        )
        documents = [self.model.from_document(data) for data in raw]
        if self._populate and documents:
            await populate(self.session, documents, self._populate)
        return documents

    async def get(self) -> Any:
        documents = await self.all()
        if self._single:
            return documents[0] if documents else None
        return documents

    def __await__(self) -> Generator[Any, None, Any]:
        return self.get().__await__()

    async def __aiter__(self) -> AsyncIterator["Document"]:
        for document in await self.all():
            yield document

    def __repr__(self) -> str:
        return f"<QuerySet {self.model.__name__} filter={self.compiled_filter()!r}>"

    # Internal helpers --------------------------------------------------
    def _clone(self, **overrides: Any) -> "QuerySet":
        params = {
            "filters": overrides.get("filters", self._filters),
            "ordering": overrides.get("ordering", self._ordering),
            "skip": overrides.get("skip", self._skip),
            "limit": overrides.get("limit", self._limit),
            "populate": overrides.get("populate", self._populate),
            "single": overrides.get("single", self._single),
        }
        return QuerySet(self.model, self.session, **params)


class QueryManager:
    """
    Collection-level operations for one document class bound to a session.
    """

    def __init__(self, session: "Session", model: type["Document"]) -> None:
        meta = getattr(model, "_meta", None)
        if meta is None or meta.embedded or meta.abstract:
            raise ModelConfigurationError(
                f"'{getattr(model, '__name__', model)}' is not a queryable document class."
            )
        self.session = session
        self.model = model
        self.collection = meta.collection
        self.logger = get_logger("query.manager")

    @property
    def adapter(self):
        return self.session.adapter

    def _compile(self, filter: Any) -> dict[str, Any]:
        return FilterCompiler(self.model).compile(filter)

    def _by_id(self, pk: Any) -> dict[str, Any]:
        return self._compile({"id": pk})

    def _load(self, data: Optional[Mapping[str, Any]]) -> Optional["Document"]:
        if data is None:
            return None
        return self.model.from_document(data)

    # Reads -------------------------------------------------------------
    def find(self, filter: Any = None) -> QuerySet:
        return QuerySet(self.model, self.session).filter(filter)

    def find_one(self, filter: Any = None) -> QuerySet:
        return self.find(filter).first()

    def find_by_id(self, pk: Any) -> QuerySet:
        return self.find({"id": pk}).first()

    async def count(self, filter: Any = None) -> int:
        return await self.find(filter).count()

    # Updates -----------------------------------------------------------
    async def update(self, filter: Any, changes: Mapping[str, Any]) -> int:
        update = compile_update(self.model, changes)
        matched = await self.adapter.update_many(self.collection, self._compile(filter), update)
        self.logger.debug(
            "Updated %s document(s) in %s", matched, self.collection, extra={"collection": self.collection}
        )
        return matched

    async def update_one(self, filter: Any, changes: Mapping[str, Any]) -> int:
        update = compile_update(self.model, changes)
        return await self.adapter.update_one(self.collection, self._compile(filter), update)

    async def find_one_and_update(
        self, filter: Any, changes: Mapping[str, Any], *, new: bool = False
    ) -> Optional["Document"]:
        update = compile_update(self.model, changes)
        data = await self.adapter.find_one_and_update(
            self.collection, self._compile(filter), update, return_new=new
        )
        return self._load(data)

    async def find_by_id_and_update(
        self, pk: Any, changes: Mapping[str, Any], *, new: bool = False
    ) -> Optional["Document"]:
        return await self.find_one_and_update({"id": pk}, changes, new=new)

    # Deletes -----------------------------------------------------------
    async def remove(self, filter: Any = None) -> int:
        """
        Delete every matching document. Delete hooks do not run.
        """
        deleted = await self.adapter.delete_many(self.collection, self._compile(filter))
        self.logger.debug(
            "Removed %s document(s) from %s", deleted, self.collection, extra={"collection": self.collection}
        )
        return deleted

    async def find_one_and_remove(self, filter: Any) -> Optional["Document"]:
        data = await self.adapter.find_one_and_delete(self.collection, self._compile(filter))
        return self._load(data)

    async def find_by_id_and_remove(self, pk: Any) -> Optional["Document"]:
        data = await self.adapter.find_one_and_delete(self.collection, self._by_id(pk))
        return self._load(data)
