"""
userdocs public package initialization.

This module exposes the primary public APIs of the document mapper.
"""

from .core import (  # noqa: F401
    BooleanField,
    DateTimeField,
    Document,
    EmbeddedDocument,
    EmbeddedListField,
    IntegerField,
    ModelConfigurationError,
    ObjectIdField,
    ReferenceField,
    ReferenceListField,
    StringField,
)
from .hooks import hooks  # noqa: F401
from .persistence import CascadeError, Session  # noqa: F401
from .query import PopulateSpec, Q, QuerySet  # noqa: F401
from .validation import ValidationError  # noqa: F401

__all__ = [
    "Document",
    "EmbeddedDocument",
    "BooleanField",
    "DateTimeField",
    "IntegerField",
    "ObjectIdField",
    "StringField",
    "ReferenceField",
    "ReferenceListField",
    "EmbeddedListField",
    "ModelConfigurationError",
    "Session",
    "CascadeError",
    "QuerySet",
    "Q",
    "PopulateSpec",
    "ValidationError",
    "hooks",
]
