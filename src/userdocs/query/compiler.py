"""
Compilation of Q objects and mapping filters into storage filters and updates.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from ..core.fields import Field, ObjectIdField
from ..core.references import RelatedField
from .expressions import AND, Q

if TYPE_CHECKING:
    from ..core.document import BaseDocument


LOOKUP_OPERATORS = {
    "exact": "$eq",
    "ne": "$ne",
    "gt": "$gt",
    "gte": "$gte",
    "lt": "$lt",
    "lte": "$lte",
    "in": "$in",
    "nin": "$nin",
    "exists": "$exists",
}

LOGICAL_OPERATORS = {"$and", "$or", "$nor"}
UPDATE_OPERATORS = {"$set", "$inc", "$unset"}
_LIST_OPERATORS = {"$in", "$nin"}


class QueryCompileError(ValueError):
    pass


class FilterCompiler:
    """
    Translate filters expressed with field names into storage filters.

    Field names become storage keys (``id`` -> ``_id``), reference values
    given as documents become ids, and string ids become ObjectIds.
    """

    def __init__(self, model: type["BaseDocument"]) -> None:
        self.model = model
        self._by_storage_key = {f.storage_key(): f for f in model._meta.get_fields()}

    def compile(self, filter: Q | Mapping[str, Any] | None) -> Dict[str, Any]:
        if filter is None:
            return {}
        if isinstance(filter, Q):
            return self._compile_q(filter)
        if isinstance(filter, Mapping):
            return self._compile_mapping(filter)
        raise QueryCompileError(f"Unsupported filter type {type(filter).__name__}")

    def combine(self, *filters: Q | Mapping[str, Any] | None) -> Dict[str, Any]:
        clauses = [compiled for compiled in (self.compile(f) for f in filters) if compiled]
        if not clauses:
            return {}
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}

    # Helpers -----------------------------------------------------------
    def field_for(self, name: str) -> Optional[Field]:
        head = name.split(".", 1)[0]
        if head == "pk":
            return self.model._meta.primary_key
        return self.model._meta.fields.get(head) or self._by_storage_key.get(head)

    def _compile_mapping(self, filter: Mapping[str, Any]) -> Dict[str, Any]:
        compiled: Dict[str, Any] = {}
        for key, value in filter.items():
            if key in LOGICAL_OPERATORS:
                compiled[key] = [self.compile(sub) for sub in value]
                continue
            if key.startswith("$"):
                raise QueryCompileError(f"Unsupported query operator '{key}'")
            field = self.field_for(key)
            storage_key = self.model._meta.storage_key(key)
            if isinstance(value, Mapping) and value and all(str(k).startswith("$") for k in value):
                compiled[storage_key] = {
                    op: self._coerce_operand(field, op, operand) for op, operand in value.items()
                }
            else:
                compiled[storage_key] = self._coerce(field, value)
        return compiled

    def _compile_q(self, q: Q) -> Dict[str, Any]:
        clauses: List[Dict[str, Any]] = []
        for child in q.children:
            if isinstance(child, Q):
                compiled = self._compile_q(child)
            else:
                lookup, value = child
                compiled = self._compile_lookup(lookup, value)
            if compiled:
                clauses.append(compiled)

        if not clauses:
            result: Dict[str, Any] = {}
        elif len(clauses) == 1:
            result = clauses[0]
        else:
            result = {"$and" if q.connector == AND else "$or": clauses}

        if q.negated and result:
            return {"$nor": [result]}
        return result

    def _compile_lookup(self, lookup: str, value: Any) -> Dict[str, Any]:
        segments = lookup.split("__")
        operator = "$eq"
        if len(segments) > 1 and segments[-1] in LOOKUP_OPERATORS:
            operator = LOOKUP_OPERATORS[segments.pop()]
        path = ".".join(segments)
        return self._compile_mapping({path: {operator: value}})

    def _coerce_operand(self, field: Optional[Field], operator: str, operand: Any) -> Any:
        if operator in _LIST_OPERATORS:
            if isinstance(operand, (str, bytes)) or not hasattr(operand, "__iter__"):
                raise QueryCompileError(f"{operator} requires a list operand")
            return [self._coerce(field, item) for item in operand]
        if operator == "$exists":
            return bool(operand)
        return self._coerce(field, operand)

    @staticmethod
    def _coerce(field: Optional[Field], value: Any) -> Any:
        if value is None or field is None:
            return value
        if isinstance(field, RelatedField):
            if isinstance(value, list):
                return [field.id_of(item) for item in value]
            return field.id_of(value)
        if isinstance(field, ObjectIdField):
            return field.to_python(value)
        return value


def compile_update(model: type["BaseDocument"], changes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Build a storage update from ``changes``.

    Plain keys become ``$set`` entries converted through their field;
    ``$set``, ``$inc`` and ``$unset`` are passed through with storage keys.
    ``$inc`` is applied by the storage engine, never read-modify-written here.
    """
    if not changes:
        raise QueryCompileError("Update changes must not be empty")

    update: Dict[str, Dict[str, Any]] = {}
    for key, value in changes.items():
        if key.startswith("$"):
            if key not in UPDATE_OPERATORS:
                raise QueryCompileError(f"Unsupported update operator '{key}'")
            target = update.setdefault(key, {})
            for name, operand in value.items():
                storage_key = model._meta.storage_key(name)
                if key == "$inc":
                    if isinstance(operand, bool) or not isinstance(operand, (int, float)):
                        raise QueryCompileError(f"$inc requires a numeric value for '{name}'")
                    target[storage_key] = operand
                elif key == "$set":
                    target[storage_key] = _to_storage(model, name, operand)
                else:
                    target[storage_key] = ""
        else:
            update.setdefault("$set", {})[model._meta.storage_key(key)] = _to_storage(
                model, key, value
            )
    return update


def _to_storage(model: type["BaseDocument"], name: str, value: Any) -> Any:
    if "." in name:
        return value
    field = model._meta.fields.get(name)
    if field is None:
        return value
    if value is None:
        return None
    return field.to_storage(field.to_python(value))
