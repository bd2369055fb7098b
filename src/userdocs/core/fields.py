"""
Field definitions and descriptors for userdocs documents.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional, Sequence, cast

from bson import ObjectId
from bson.errors import InvalidId

if TYPE_CHECKING:
    from .document import BaseDocument


DEFAULT_REQUIRED_MESSAGE = "This field is required."


class FieldError(Exception):
    """Internal exception for field configuration issues."""


class Field:
    """
    Base class for document field descriptors.

    Fields manage attribute storage on document instances and know how to
    convert values to and from their stored representation.
    """

    _creation_counter = 0

    def __init__(
        self,
        *,
        primary_key: bool = False,
        required: bool | str = False,
        default: Any = None,
        db_field: Optional[str] = None,
        choices: Optional[Sequence[Any]] = None,
        validators: Optional[Iterable[Callable[[Any], None]]] = None,
        help_text: Optional[str] = None,
    ) -> None:
        self.primary_key = primary_key
        self.required = bool(required)
        self.required_message = required if isinstance(required, str) else DEFAULT_REQUIRED_MESSAGE
        self.default = default
        self.db_field = db_field
        self.choices = tuple(choices) if choices is not None else None
        self.validators = list(validators or [])
        self.help_text = help_text

        self.model: type["BaseDocument"] | None = None  # Will be set during contribute_to_class
        self.name: str | None = None
        self.creation_counter = Field._creation_counter
        Field._creation_counter += 1

    # Descriptor protocol -------------------------------------------------
    def __get__(self, instance: object | None, owner: type | None = None) -> Any:
        if instance is None:
            return self

        document = cast("BaseDocument", instance)
        name = self.require_name()
        value = document._field_values.get(name)
        if value is None and name not in document._field_values:
            default = self.get_default()
            if default is not None:
                document._field_values[name] = default
                return default
        return value

    def __set__(self, instance: object, value: Any) -> None:
        document = cast("BaseDocument", instance)
        name = self.require_name()
        if value is None:
            # Required-ness is reported by validation, not on assignment.
            document._field_values[name] = None
            return

        if self.choices and value not in self.choices:
            raise ValueError(f"Value '{value}' for field '{name}' not in choices {self.choices}")

        document._field_values[name] = self.to_python(value)

    # Metadata helpers ----------------------------------------------------
    def bind(self, model: type["BaseDocument"], name: str) -> None:
        self.model = model
        self.name = name
        if self.db_field is None:
            self.db_field = name

    def contribute_to_class(self, model: type["BaseDocument"], name: str) -> None:
        """
        Attach the field to the document class as a descriptor.
        """
        self.bind(model, name)
        setattr(model, name, self)

    def require_name(self) -> str:
        if self.name is None:
            raise FieldError("Field name is not set.")
        return self.name

    def storage_key(self) -> str:
        if self.db_field:
            return self.db_field
        return self.require_name()

    # Conversion / validation ---------------------------------------------
    def get_default(self) -> Any:
        if callable(self.default):
            return self.default()
        return self.default

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def to_python(self, value: Any) -> Any:
        return value

    def to_storage(self, value: Any) -> Any:
        return value

    def from_storage(self, value: Any) -> Any:
        if value is None:
            return None
        return self.to_python(value)

    def is_empty(self, value: Any) -> bool:
        return value is None

    def run_validators(self, value: Any) -> None:
        for validator in self.validators:
            validator(value)


class ObjectIdField(Field):
    """
    BSON ObjectId field; the default primary key, assigned at construction.
    """

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("default", ObjectId)
        super().__init__(**kwargs)

    def to_python(self, value: Any) -> ObjectId | None:
        if value is None or isinstance(value, ObjectId):
            return value
        try:
            return ObjectId(value)
        except (InvalidId, TypeError) as exc:
            raise ValueError(f"Invalid ObjectId '{value}'") from exc


class IntegerField(Field):
    def to_python(self, value: Any) -> int | None:
        if value is None:
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid integer value '{value}'")
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid integer value '{value}'") from exc


class BooleanField(Field):
    def __init__(self, *, default: Any = False, **kwargs: Any) -> None:
        super().__init__(default=default, **kwargs)

    def to_python(self, value: Any) -> bool | None:
        if value is None:
            return value
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in {"true", "t", "1"}:
                return True
            if lowered in {"false", "f", "0"}:
                return False
        if isinstance(value, (int, float)):
            return bool(value)
        raise ValueError(f"Invalid boolean value '{value}'")


class StringField(Field):
    def __init__(self, *, max_length: int | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.max_length = max_length

    def to_python(self, value: Any) -> str | None:
        if value is None:
            return value
        result = str(value)
        if self.max_length and len(result) > self.max_length:
            field_name = self.require_name()
            raise ValueError(f"Value for field '{field_name}' exceeds max_length {self.max_length}")
        return result

    def is_empty(self, value: Any) -> bool:
        return value is None or value == ""


class DateTimeField(Field):
    def __init__(self, *, auto_now_add: bool = False, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.auto_now_add = auto_now_add

    @property
    def has_default(self) -> bool:
        return self.auto_now_add or super().has_default

    def get_default(self) -> Any:
        if self.auto_now_add:
            return datetime.now(timezone.utc)
        return super().get_default()

    def to_python(self, value: Any) -> datetime | None:
        if value is None:
            return value
        if isinstance(value, datetime):
            # BSON dates come back naive but are always UTC.
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value
        raise ValueError(f"Expected datetime for field '{self.name}', received {value!r}")
