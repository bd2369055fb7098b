import pytest
from bson import ObjectId

from userdocs.core import (
    Document,
    EmbeddedDocument,
    IntegerField,
    ModelConfigurationError,
    ObjectIdField,
    StringField,
)


class Author(Document):
    name = StringField(required=True)
    age = IntegerField(default=0)
    nickname = StringField(db_field="nick")


class Address(EmbeddedDocument):
    city = StringField()


def test_document_metadata_and_fields():
    assert Author._meta.collection == "authors"
    assert list(Author._meta.fields) == ["id", "name", "age", "nickname"]
    assert Author._meta.primary_key.name == "id"
    assert Author._meta.storage_key("id") == "_id"
    assert Author._meta.storage_key("pk") == "_id"
    assert Author._meta.storage_key("nickname") == "nick"
    assert Author._meta.storage_key("posts.url") == "posts.url"


def test_id_assigned_at_construction():
    author = Author(name="Joe")
    assert isinstance(author.pk, ObjectId)
    assert author.id == author.pk
    assert author.is_new
    assert author.age == 0


def test_to_document_and_from_document():
    author = Author(name="Joe", nickname="jo")
    stored = author.to_document()
    assert stored == {"_id": author.pk, "name": "Joe", "age": 0, "nick": "jo"}

    loaded = Author.from_document(stored)
    assert loaded.pk == author.pk
    assert loaded.nickname == "jo"
    assert loaded.is_new is False
    assert loaded.is_dirty() is False


def test_changed_fields_tracks_assignments():
    loaded = Author.from_document({"_id": ObjectId(), "name": "Joe", "age": 1})
    loaded.age = 2
    assert loaded.changed_fields() == {"age": 2}
    loaded.mark_persisted()
    assert loaded.changed_fields() == {}


def test_custom_collection_name():
    class Entry(Document):
        title = StringField()

        class Meta:
            collection = "journal"

    assert Entry._meta.collection == "journal"


def test_abstract_document_is_not_concrete():
    class Base(Document):
        class Meta:
            abstract = True

    assert Base._meta.abstract
    assert Base._meta.primary_key is None


def test_embedded_document_has_no_identity():
    address = Address(city="Tbilisi")
    assert "id" not in Address._meta.fields
    assert address.to_document() == {"city": "Tbilisi"}
    assert not address.is_removed
    address.remove()
    assert address.is_removed


def test_explicit_primary_key():
    class Tag(Document):
        slug = ObjectIdField(primary_key=True, db_field="_id")

    assert list(Tag._meta.fields) == ["slug"]
    assert Tag._meta.storage_key("pk") == "_id"


def test_id_field_without_primary_key_raises():
    with pytest.raises(ModelConfigurationError):

        class Broken(Document):
            id = StringField()


def test_multiple_primary_keys_raise():
    with pytest.raises(ModelConfigurationError):

        class Broken(Document):
            first = ObjectIdField(primary_key=True)
            second = ObjectIdField(primary_key=True)


async def test_update_rejects_unknown_field(session):
    author = Author(name="Joe")
    with pytest.raises(KeyError):
        await author.update(session, {"unknown": 1})
    assert await Author.count(session) == 0


def test_remove_and_update_bind_to_class_or_instance():
    author = Author(name="Joe")
    assert Author.remove.__self__ is Author
    assert author.remove.__self__ is author
    assert Author.update.__self__ is Author
    assert author.update.__self__ is author
