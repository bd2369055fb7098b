"""
Core building blocks for userdocs documents and metadata handling.
"""

from .document import (
    BaseDocument,
    Document,
    DocumentMeta,
    DocumentOptions,
    EmbeddedDocument,
    ModelConfigurationError,
)
from .fields import (
    BooleanField,
    DateTimeField,
    Field,
    IntegerField,
    ObjectIdField,
    StringField,
)
from .references import (
    EmbeddedList,
    EmbeddedListField,
    ReferenceField,
    ReferenceListField,
    RelatedField,
    RelationshipError,
)

__all__ = [
    "BaseDocument",
    "BooleanField",
    "DateTimeField",
    "Document",
    "DocumentMeta",
    "DocumentOptions",
    "EmbeddedDocument",
    "EmbeddedList",
    "EmbeddedListField",
    "Field",
    "IntegerField",
    "ModelConfigurationError",
    "ObjectIdField",
    "ReferenceField",
    "ReferenceListField",
    "RelatedField",
    "RelationshipError",
    "StringField",
]
