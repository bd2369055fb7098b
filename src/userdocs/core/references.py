"""
Relationship field kinds and the registry resolving their targets.

A field is either a reference (stores ids of documents in another
collection) or an embedded list (stores sub-documents inline). The kind is
fixed by the field class chosen in the schema, never inferred from values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple, Type

from .fields import Field, ObjectIdField

if TYPE_CHECKING:
    from .document import BaseDocument, Document, EmbeddedDocument


class RelationshipError(RuntimeError):
    pass


class RelatedField(Field):
    """
    Base class for reference fields.
    """

    many = False

    def __init__(self, to: Type | str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.to = to
        self.remote_model: Optional[Type["Document"]] = to if isinstance(to, type) else None
        self._id_field = ObjectIdField()

    def resolve_model(self, model: Type["Document"]) -> None:
        self.remote_model = model

    def require_remote_model(self) -> Type["Document"]:
        if self.remote_model is None:
            raise RelationshipError(
                f"Reference target '{self.to}' of field '{self.name}' is not declared."
            )
        return self.remote_model

    def id_of(self, value: Any) -> Any:
        """
        Return the id for a reference value given as a document or a bare id.
        """
        if value is None:
            return None
        if hasattr(value, "pk"):
            return value.pk
        return self._id_field.to_python(value)

    def _coerce(self, value: Any) -> Any:
        # Populated documents are kept; anything else is normalised to an id.
        if hasattr(value, "pk"):
            return value
        return self.id_of(value)


class ReferenceField(RelatedField):
    """
    A single reference to a document in another collection.
    """

    def to_python(self, value: Any) -> Any:
        return self._coerce(value)

    def to_storage(self, value: Any) -> Any:
        return self.id_of(value)

    def from_storage(self, value: Any) -> Any:
        return self.id_of(value)


class ReferenceListField(RelatedField):
    """
    An ordered list of references. Duplicates are dropped when persisted.
    """

    many = True

    def __init__(self, to: Type | str, **kwargs: Any) -> None:
        kwargs.setdefault("default", list)
        super().__init__(to, **kwargs)

    def to_python(self, value: Any) -> list[Any]:
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise ValueError(f"Field '{self.name}' expects a list of references")
        return [self._coerce(item) for item in value]

    def to_storage(self, value: Any) -> list[Any]:
        if value is None:
            return []
        return list(dict.fromkeys(self.id_of(item) for item in value if item is not None))

    def from_storage(self, value: Any) -> list[Any]:
        if value is None:
            return []
        return [self.id_of(item) for item in value]


class EmbeddedList(list):
    """
    List of embedded documents that casts mappings to the declared type.
    """

    def __init__(self, document_type: Type["EmbeddedDocument"], items: Iterable[Any] = ()) -> None:
        self.document_type = document_type
        super().__init__(self._coerce(item) for item in items)

    def _coerce(self, item: Any) -> "EmbeddedDocument":
        if isinstance(item, self.document_type):
            return item
        if isinstance(item, dict):
            return self.document_type(**item)
        raise TypeError(
            f"Expected {self.document_type.__name__} or mapping, received {type(item).__name__}"
        )

    def append(self, item: Any) -> None:
        super().append(self._coerce(item))

    def insert(self, index: Any, item: Any) -> None:
        super().insert(index, self._coerce(item))

    def extend(self, items: Iterable[Any]) -> None:
        super().extend(self._coerce(item) for item in items)

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            super().__setitem__(index, [self._coerce(item) for item in value])
        else:
            super().__setitem__(index, self._coerce(value))

    def prune_removed(self) -> None:
        self[:] = [item for item in self if not item.is_removed]


class EmbeddedListField(Field):
    """
    An ordered list of sub-documents stored inline in the owner.
    """

    def __init__(self, document_type: Type["EmbeddedDocument"], **kwargs: Any) -> None:
        kwargs.setdefault("default", lambda: EmbeddedList(document_type))
        super().__init__(**kwargs)
        self.document_type = document_type

    def to_python(self, value: Any) -> EmbeddedList:
        if isinstance(value, EmbeddedList) and value.document_type is self.document_type:
            return value
        return EmbeddedList(self.document_type, value)

    def to_storage(self, value: Any) -> list[dict[str, Any]]:
        if value is None:
            return []
        return [item.to_document() for item in value if not item.is_removed]

    def from_storage(self, value: Any) -> EmbeddedList:
        items = [self.document_type.from_document(raw) for raw in value or []]
        return EmbeddedList(self.document_type, items)


class RelationRegistry:
    """
    Resolves string reference targets once the named class is declared.
    """

    def __init__(self) -> None:
        self.models: Dict[str, Type["BaseDocument"]] = {}
        self.pending_fields: List[Tuple[Type, RelatedField]] = []

    def register_model(self, model: Type["BaseDocument"]) -> None:
        self.models[model.__name__] = model
        self._resolve_pending()

    def register_field(self, model: Type, field: RelatedField) -> None:
        target = self._resolve_target(field.to)
        if target is None:
            self.pending_fields.append((model, field))
            return
        field.resolve_model(target)

    def get_model(self, label: str | Type) -> Optional[Type["BaseDocument"]]:
        return self._resolve_target(label)

    def _resolve_pending(self) -> None:
        unresolved = []
        for model, field in self.pending_fields:
            target = self._resolve_target(field.to)
            if target is None:
                unresolved.append((model, field))
                continue
            field.resolve_model(target)
        self.pending_fields = unresolved

    def _resolve_target(self, target: Type | str) -> Optional[Type["BaseDocument"]]:
        if isinstance(target, type):
            return target
        label = target.split(".")[-1]
        return self.models.get(label)


relation_registry = RelationRegistry()
