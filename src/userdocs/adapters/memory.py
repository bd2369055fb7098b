"""
In-process document store adapter.

Implements the subset of the MongoDB query language that userdocs emits:
comparison operators (``$eq``, ``$ne``, ``$gt``, ``$gte``, ``$lt``, ``$lte``,
``$in``, ``$nin``, ``$exists``), logical operators (``$and``, ``$or``, ``$nor``)
and update operators (``$set``, ``$inc``, ``$unset``).
"""

from __future__ import annotations

import asyncio
import copy
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping

from bson import ObjectId

from ..utils import get_logger, resolve_slow_query_ms, time_call
from .base import (
    AdapterConnectionError,
    AdapterExecutionError,
    ConnectionConfig,
    DocumentAdapter,
    Filter,
    Sort,
    Update,
)

_MISSING = object()


@dataclass
class MemoryStore:
    """
    Collections keyed by name; each collection keeps documents in insertion order.
    """

    name: str = "default"
    collections: Dict[str, "OrderedDict[Any, dict[str, Any]]"] = field(default_factory=dict)

    def collection(self, name: str) -> "OrderedDict[Any, dict[str, Any]]":
        return self.collections.setdefault(name, OrderedDict())


class MemoryAdapter(DocumentAdapter):
    """
    Adapter keeping documents in a :class:`MemoryStore`.

    Documents are deep-copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self, store: MemoryStore | None = None, slow_query_ms: int | None = None) -> None:
        self.store = store
        self._connected = False
        self.logger = get_logger("adapters.memory")
        self.slow_query_ms = resolve_slow_query_ms(default=100, override=slow_query_ms)

    # ------------------------------------------------------------------ #
    # Connection management
    # ------------------------------------------------------------------ #
    async def connect(self, config: ConnectionConfig) -> None:
        if self.store is None:
            name = config.dsn.hosts if config.dsn and config.dsn.hosts else "default"
            self.store = MemoryStore(name=name)
        self._connected = True
        self.logger.info("Connected to in-memory store %s", config.descriptive_label())

    async def close(self) -> None:
        self._connected = False

    def _collection(self, name: str) -> "OrderedDict[Any, dict[str, Any]]":
        if not self._connected or self.store is None:
            raise AdapterConnectionError("MemoryAdapter is not connected.")
        return self.store.collection(name)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #
    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> Any:
        await asyncio.sleep(0)
        docs = self._collection(collection)
        with self._timed("memory.insert_one", collection):
            stored = copy.deepcopy(dict(document))
            stored.setdefault("_id", ObjectId())
            if stored["_id"] in docs:
                raise AdapterExecutionError(
                    f"Duplicate key {stored['_id']!r} in collection '{collection}'"
                )
            docs[stored["_id"]] = stored
        return stored["_id"]

    async def find(
        self,
        collection: str,
        filter: Filter,
        *,
        sort: Sort | None = None,
        skip: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        docs = self._collection(collection)
        with self._timed("memory.find", collection, filter):
            results = [doc for doc in docs.values() if matches(doc, filter)]
            if sort:
                results = _sorted(results, sort)
            if skip:
                results = results[skip:]
            if limit:
                results = results[:limit]
            return copy.deepcopy(results)

    async def find_one(self, collection: str, filter: Filter) -> dict[str, Any] | None:
        found = await self.find(collection, filter, limit=1)
        return found[0] if found else None

    async def count(self, collection: str, filter: Filter) -> int:
        await asyncio.sleep(0)
        docs = self._collection(collection)
        with self._timed("memory.count", collection, filter):
            return sum(1 for doc in docs.values() if matches(doc, filter))

    async def update_one(self, collection: str, filter: Filter, update: Update) -> int:
        return await self._update(collection, filter, update, many=False)

    async def update_many(self, collection: str, filter: Filter, update: Update) -> int:
        return await self._update(collection, filter, update, many=True)

    async def find_one_and_update(
        self, collection: str, filter: Filter, update: Update, *, return_new: bool = False
    ) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        docs = self._collection(collection)
        with self._timed("memory.find_one_and_update", collection, filter):
            for key, doc in list(docs.items()):
                if matches(doc, filter):
                    docs[key] = updated = _updated(doc, update)
                    return copy.deepcopy(updated if return_new else doc)
        return None

    async def find_one_and_delete(self, collection: str, filter: Filter) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        docs = self._collection(collection)
        with self._timed("memory.find_one_and_delete", collection, filter):
            for key, doc in docs.items():
                if matches(doc, filter):
                    del docs[key]
                    return doc
        return None

    async def delete_one(self, collection: str, filter: Filter) -> int:
        return await self._delete(collection, filter, many=False)

    async def delete_many(self, collection: str, filter: Filter) -> int:
        return await self._delete(collection, filter, many=True)

    async def drop_collection(self, collection: str) -> None:
        await asyncio.sleep(0)
        if self.store is None:
            raise AdapterConnectionError("MemoryAdapter is not connected.")
        self.store.collections.pop(collection, None)

    # ------------------------------------------------------------------ #
    def _timed(self, name: str, collection: str, filter: Filter | None = None):
        return time_call(
            name,
            self.logger,
            collection=collection,
            filter=filter,
            threshold_ms=self.slow_query_ms,
        )

    async def _update(self, collection: str, filter: Filter, update: Update, *, many: bool) -> int:
        await asyncio.sleep(0)
        docs = self._collection(collection)
        matched = 0
        with self._timed("memory.update_many" if many else "memory.update_one", collection, filter):
            for key, doc in list(docs.items()):
                if not matches(doc, filter):
                    continue
                docs[key] = _updated(doc, update)
                matched += 1
                if not many:
                    break
        return matched

    async def _delete(self, collection: str, filter: Filter, *, many: bool) -> int:
        await asyncio.sleep(0)
        docs = self._collection(collection)
        with self._timed("memory.delete_many" if many else "memory.delete_one", collection, filter):
            doomed = [key for key, doc in docs.items() if matches(doc, filter)]
            if not many:
                doomed = doomed[:1]
            for key in doomed:
                del docs[key]
        return len(doomed)


# ---------------------------------------------------------------------- #
# Query evaluation
# ---------------------------------------------------------------------- #
def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(value: Any, operand: Any) -> bool:
        if value is _MISSING or value is None:
            return False
        try:
            return op(value, operand)
        except TypeError:
            return False

    return check


def _equals(value: Any, operand: Any) -> bool:
    if value is _MISSING:
        return operand is None
    if isinstance(value, list) and not isinstance(operand, list):
        return operand in value
    return value == operand


def _in(value: Any, operand: Any) -> bool:
    if not isinstance(operand, (list, tuple, set)):
        raise AdapterExecutionError("$in/$nin require an array operand")
    return any(_equals(value, candidate) for candidate in operand)


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$eq": _equals,
    "$ne": lambda value, operand: not _equals(value, operand),
    "$gt": _compare(lambda a, b: a > b),
    "$gte": _compare(lambda a, b: a >= b),
    "$lt": _compare(lambda a, b: a < b),
    "$lte": _compare(lambda a, b: a <= b),
    "$in": _in,
    "$nin": lambda value, operand: not _in(value, operand),
    "$exists": lambda value, operand: (value is not _MISSING) == bool(operand),
}


def _resolve(document: Mapping[str, Any], path: str) -> Any:
    current: Any = document
    for segment in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(segment, _MISSING)
        elif isinstance(current, list):
            if segment.isdigit():
                index = int(segment)
                current = current[index] if index < len(current) else _MISSING
            else:
                current = [
                    item.get(segment, _MISSING) for item in current if isinstance(item, Mapping)
                ]
        else:
            return _MISSING
    return current


def _is_operator_mapping(value: Any) -> bool:
    return isinstance(value, Mapping) and bool(value) and all(
        str(key).startswith("$") for key in value
    )


def matches(document: Mapping[str, Any], filter: Filter | None) -> bool:
    """
    Return ``True`` if ``document`` satisfies ``filter``.
    """
    if not filter:
        return True
    for key, condition in filter.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif key == "$nor":
            if any(matches(document, sub) for sub in condition):
                return False
        elif key.startswith("$"):
            raise AdapterExecutionError(f"Unsupported query operator '{key}'")
        else:
            value = _resolve(document, key)
            if _is_operator_mapping(condition):
                for op, operand in condition.items():
                    check = _OPERATORS.get(op)
                    if check is None:
                        raise AdapterExecutionError(f"Unsupported query operator '{op}'")
                    if not check(value, operand):
                        return False
            elif not _equals(value, condition):
                return False
    return True


def apply_update(document: dict[str, Any], update: Update) -> None:
    """
    Apply ``$set``/``$inc``/``$unset`` to ``document`` in place.
    """
    if not update:
        raise AdapterExecutionError("Update document must not be empty")
    for op, changes in update.items():
        if op == "$set":
            for key, value in changes.items():
                _assign(document, key, copy.deepcopy(value))
        elif op == "$inc":
            for key, delta in changes.items():
                current = _resolve(document, key)
                if current is _MISSING:
                    current = 0
                if not isinstance(current, (int, float)) or isinstance(current, bool):
                    raise AdapterExecutionError(
                        f"Cannot apply $inc to non-numeric field '{key}'"
                    )
                _assign(document, key, current + delta)
        elif op == "$unset":
            for key in changes:
                _unassign(document, key)
        else:
            raise AdapterExecutionError(f"Unsupported update operator '{op}'")


def _updated(document: dict[str, Any], update: Update) -> dict[str, Any]:
    """
    Return an updated copy of ``document``; the stored one is untouched if any operator fails.
    """
    result = copy.deepcopy(document)
    apply_update(result, update)
    return result


def _assign(document: dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    current: Any = document
    for segment in parents:
        if isinstance(current, list):
            current = current[int(segment)]
        else:
            current = current.setdefault(segment, {})
    if isinstance(current, list):
        current[int(leaf)] = value
    else:
        current[leaf] = value


def _unassign(document: dict[str, Any], path: str) -> None:
    *parents, leaf = path.split(".")
    current: Any = document
    for segment in parents:
        current = current.get(segment) if isinstance(current, Mapping) else None
        if current is None:
            return
    if isinstance(current, dict):
        current.pop(leaf, None)


def _sorted(documents: list[dict[str, Any]], sort: Sort) -> list[dict[str, Any]]:
    result = list(documents)
    for key, direction in reversed(list(sort)):

        def sort_key(
            doc: dict[str, Any], key: str = key, direction: int = direction
        ) -> tuple[bool, Any]:
            value = _resolve(doc, key)
            missing = value is _MISSING or value is None
            # Missing values sort last in either direction.
            return (missing if direction >= 0 else not missing, None if missing else value)

        try:
            result.sort(key=sort_key, reverse=direction < 0)
        except TypeError as exc:
            raise AdapterExecutionError(f"Cannot sort on mixed-type field '{key}'") from exc
    return result
