"""
Document base classes and metadata orchestration for userdocs.
"""

from __future__ import annotations

import types
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Mapping, Optional, Type, TypeVar

from ..utils import collection_name
from .fields import Field, ObjectIdField
from .references import EmbeddedList, EmbeddedListField, RelatedField, relation_registry

if TYPE_CHECKING:
    from ..persistence.session import Session
    from ..query.queryset import QuerySet
    from ..validation import ValidationError


class ModelConfigurationError(Exception):
    """Raised when a document class is misconfigured."""


@dataclass
class DocumentOptions:
    """
    Container for document metadata calculated by :class:`DocumentMeta`.
    """

    model: Type["BaseDocument"]
    collection: str = ""
    abstract: bool = False
    embedded: bool = False
    fields: "OrderedDict[str, Field]" = field(default_factory=OrderedDict)
    primary_key: Optional[Field] = None

    def add_field(self, field_obj: Field) -> None:
        if field_obj.name in self.fields:
            raise ModelConfigurationError(
                f"Duplicate field name '{field_obj.name}' on document '{self.model.__name__}'"
            )
        self.fields[field_obj.name] = field_obj
        if field_obj.primary_key:
            if self.primary_key and self.primary_key is not field_obj:
                raise ModelConfigurationError(
                    f"Multiple primary keys defined on document '{self.model.__name__}'"
                )
            self.primary_key = field_obj

    def get_field(self, name: str) -> Field:
        try:
            return self.fields[name]
        except KeyError as exc:
            raise KeyError(f"Unknown field '{name}' on document '{self.model.__name__}'") from exc

    def get_fields(self) -> Iterable[Field]:
        return self.fields.values()

    def storage_key(self, name: str) -> str:
        """
        Map a field name (or an already-storage key such as ``_id``) to its stored key.
        """
        head, sep, tail = name.partition(".")
        if head == "pk" and self.primary_key is not None:
            head = self.primary_key.require_name()
        field_obj = self.fields.get(head)
        key = field_obj.storage_key() if field_obj is not None else head
        return f"{key}{sep}{tail}"


TDocument = TypeVar("TDocument", bound="BaseDocument")


class DocumentMeta(type):
    """
    Metaclass responsible for collecting fields and establishing metadata.
    """

    def __new__(mcls, name: str, bases: tuple[type, ...], attrs: Dict[str, Any]) -> "DocumentMeta":
        # The root BaseDocument class carries no fields.
        if not any(isinstance(base, DocumentMeta) for base in bases):
            return super().__new__(mcls, name, bases, attrs)

        declared_fields: Dict[str, Field] = {}
        for attr_name, value in list(attrs.items()):
            if isinstance(value, Field):
                declared_fields[attr_name] = attrs.pop(attr_name)

        cls = super().__new__(mcls, name, bases, attrs)

        # Meta is read from the class body only so subclasses do not inherit abstract=True.
        meta = attrs.get("Meta")
        abstract = getattr(meta, "abstract", False)
        embedded = getattr(cls, "_embedded", False)
        collection = getattr(meta, "collection", None) or collection_name(name)

        cls._meta = DocumentOptions(
            model=cls, collection=collection, abstract=abstract, embedded=embedded
        )

        # TODO: Support inheriting fields from abstract base documents.
        sorted_fields = sorted(
            declared_fields.items(), key=lambda item: item[1].creation_counter
        )
        for attr_name, field_obj in sorted_fields:
            field_obj.contribute_to_class(cls, attr_name)
            cls._meta.add_field(field_obj)
            if isinstance(field_obj, RelatedField):
                relation_registry.register_field(cls, field_obj)

        if not cls._meta.primary_key and not abstract and not embedded:
            if "id" in cls._meta.fields:
                raise ModelConfigurationError(
                    f"Document '{cls.__name__}' defines a field named 'id' but no primary key. "
                    "Either set primary_key=True on that field or define a different name."
                )
            id_field = ObjectIdField(primary_key=True, db_field="_id")
            id_field.contribute_to_class(cls, "id")
            cls._meta.add_field(id_field)
            cls._meta.fields.move_to_end("id", last=False)

        if not abstract:
            relation_registry.register_model(cls)

        return cls


class dualmethod:
    """
    A method with one implementation for instance access and another for class access.

    ``joe.remove(session)`` removes that document while ``User.remove(session, filter)``
    removes by filter.
    """

    def __init__(self, instance_func: Callable[..., Any]) -> None:
        self.instance_func = instance_func
        self.class_func: Callable[..., Any] | None = None
        self.__doc__ = instance_func.__doc__

    def classmethod(self, class_func: Callable[..., Any]) -> "dualmethod":
        self.class_func = class_func
        return self

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            if self.class_func is None:
                raise AttributeError(f"'{self.instance_func.__name__}' is an instance method")
            return types.MethodType(self.class_func, owner)
        return types.MethodType(self.instance_func, instance)


class BaseDocument(metaclass=DocumentMeta):
    """
    Field container shared by top-level and embedded documents.
    """

    _meta: DocumentOptions
    _embedded = False

    def __init__(self, **kwargs: Any) -> None:
        self._field_values: Dict[str, Any] = {}

        for field_obj in self._meta.get_fields():
            if field_obj.name in kwargs:
                setattr(self, field_obj.name, kwargs[field_obj.name])
            elif field_obj.has_default:
                default_value = field_obj.get_default()
                if default_value is not None:
                    setattr(self, field_obj.name, default_value)

    def __repr__(self) -> str:
        field_parts = ", ".join(
            f"{field_obj.name}={repr(self._field_values.get(field_obj.name))}"
            for field_obj in self._meta.get_fields()
            if field_obj.name in self._field_values
        )
        return f"<{self.__class__.__name__} {field_parts}>"

    def to_dict(self) -> Dict[str, Any]:
        return {field_obj.name: getattr(self, field_obj.name) for field_obj in self._meta.get_fields()}

    def to_document(self) -> Dict[str, Any]:
        """
        Return the stored representation: references collapse to ids and
        embedded documents to mappings.
        """
        return {
            field_obj.storage_key(): field_obj.to_storage(getattr(self, field_obj.require_name()))
            for field_obj in self._meta.get_fields()
        }

    @classmethod
    def from_document(cls: Type[TDocument], data: Mapping[str, Any]) -> TDocument:
        instance = cls.__new__(cls)
        instance._field_values = {}
        for field_obj in cls._meta.get_fields():
            key = field_obj.storage_key()
            if key in data:
                instance._field_values[field_obj.require_name()] = field_obj.from_storage(data[key])
            elif field_obj.has_default:
                instance._field_values[field_obj.require_name()] = field_obj.get_default()
        instance._after_load()
        return instance

    def _after_load(self) -> None:
        return None

    # Validation --------------------------------------------------------
    def full_clean(self) -> None:
        from ..validation import validate_instance

        validate_instance(self)

    def validate_sync(self) -> Optional["ValidationError"]:
        """
        Run validation immediately and return the error instead of raising it.
        """
        from ..validation import ValidationError

        try:
            self.full_clean()
        except ValidationError as exc:
            return exc
        return None

    def clean(self) -> None:
        """
        Hook for subclasses to implement document-level validation.
        """
        return None


class EmbeddedDocument(BaseDocument):
    """
    A sub-document stored inline in its owner, without identity of its own.
    """

    _embedded = True

    class Meta:
        abstract = True

    def __init__(self, **kwargs: Any) -> None:
        self._removed = False
        super().__init__(**kwargs)

    def _after_load(self) -> None:
        self._removed = False

    def remove(self) -> None:
        """
        Mark this sub-document for exclusion on the owner's next save.
        """
        self._removed = True

    @property
    def is_removed(self) -> bool:
        return self._removed


class Document(BaseDocument):
    """
    A document stored in its own collection.

    The ``id`` primary key is assigned at construction, so unsaved documents
    can already be referenced by others.
    """

    class Meta:
        abstract = True

    def __init__(self, **kwargs: Any) -> None:
        self._is_new = True
        self._snapshot: Dict[str, Any] = {}
        super().__init__(**kwargs)

    def _after_load(self) -> None:
        self._is_new = False
        self._snapshot = self.to_document()

    @property
    def pk(self) -> Any:
        if not self._meta.primary_key:
            raise ModelConfigurationError(
                f"Document '{self.__class__.__name__}' does not define a primary key."
            )
        return getattr(self, self._meta.primary_key.require_name())

    @property
    def is_new(self) -> bool:
        return self._is_new

    def changed_fields(self) -> Dict[str, Any]:
        """
        Stored values that differ from the last loaded or saved state.
        """
        current = self.to_document()
        return {
            key: value
            for key, value in current.items()
            if key not in self._snapshot or self._snapshot[key] != value
        }

    def is_dirty(self) -> bool:
        return bool(self.changed_fields())

    def mark_persisted(self) -> None:
        for field_obj in self._meta.get_fields():
            if isinstance(field_obj, EmbeddedListField):
                value = getattr(self, field_obj.require_name())
                if isinstance(value, EmbeddedList):
                    value.prune_removed()
        self._is_new = False
        self._snapshot = self.to_document()

    @classmethod
    def register_hook(cls, event: str, handler) -> None:
        from ..hooks import hooks

        hooks.register(event, handler, model=cls)

    # Persistence -------------------------------------------------------
    async def save(self, session: "Session") -> "Document":
        return await session.save(self)

    @dualmethod
    async def remove(self, session: "Session") -> None:
        """
        Delete this document, running its delete hooks.
        """
        await session.remove(self)

    @remove.classmethod
    async def remove(cls, session: "Session", filter: Any = None) -> int:
        """
        Delete every document matching ``filter`` without running delete hooks.
        """
        return await session.query(cls).remove(filter)

    @dualmethod
    async def update(self, session: "Session", changes: Mapping[str, Any]) -> "Document":
        """
        Apply ``changes`` to this document and save it.
        """
        for name, value in changes.items():
            self._meta.get_field(name)
            setattr(self, name, value)
        return await session.save(self)

    @update.classmethod
    async def update(cls, session: "Session", filter: Any, changes: Mapping[str, Any]) -> int:
        """
        Apply ``changes`` to every document matching ``filter``.
        """
        return await session.query(cls).update(filter, changes)

    @classmethod
    def find(cls, session: "Session", filter: Any = None) -> "QuerySet":
        return session.query(cls).find(filter)

    @classmethod
    def find_one(cls, session: "Session", filter: Any = None) -> "QuerySet":
        return session.query(cls).find_one(filter)

    @classmethod
    def find_by_id(cls, session: "Session", pk: Any) -> "QuerySet":
        return session.query(cls).find_by_id(pk)

    @classmethod
    async def count(cls, session: "Session", filter: Any = None) -> int:
        return await session.query(cls).count(filter)

    @classmethod
    async def find_one_and_update(
        cls, session: "Session", filter: Any, changes: Mapping[str, Any], *, new: bool = False
    ) -> Optional["Document"]:
        return await session.query(cls).find_one_and_update(filter, changes, new=new)

    @classmethod
    async def find_by_id_and_update(
        cls, session: "Session", pk: Any, changes: Mapping[str, Any], *, new: bool = False
    ) -> Optional["Document"]:
        return await session.query(cls).find_by_id_and_update(pk, changes, new=new)

    @classmethod
    async def find_one_and_remove(cls, session: "Session", filter: Any) -> Optional["Document"]:
        return await session.query(cls).find_one_and_remove(filter)

    @classmethod
    async def find_by_id_and_remove(cls, session: "Session", pk: Any) -> Optional["Document"]:
        return await session.query(cls).find_by_id_and_remove(pk)
