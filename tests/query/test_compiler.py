import pytest
from bson import ObjectId

from userdocs.core import Document, IntegerField, ReferenceField, StringField
from userdocs.query import FilterCompiler, Q, QueryCompileError, compile_update


class Writer(Document):
    name = StringField()
    likes = IntegerField(default=0)
    nickname = StringField(db_field="nick")


class Draft(Document):
    title = StringField()
    writer = ReferenceField(Writer)


def test_mapping_filter_maps_storage_keys():
    oid = ObjectId()
    compiled = FilterCompiler(Writer).compile({"id": str(oid), "nickname": "jo"})
    assert compiled == {"_id": oid, "nick": "jo"}


def test_mapping_filter_coerces_operator_operands():
    first, second = ObjectId(), ObjectId()
    compiled = FilterCompiler(Writer).compile({"_id": {"$in": [str(first), second]}})
    assert compiled == {"_id": {"$in": [first, second]}}


def test_reference_values_collapse_to_ids():
    writer = Writer(name="Joe")
    compiled = FilterCompiler(Draft).compile({"writer": writer})
    assert compiled == {"writer": writer.pk}


def test_q_lookups_and_connectors():
    compiler = FilterCompiler(Writer)
    assert compiler.compile(Q(name="Joe")) == {"name": {"$eq": "Joe"}}
    assert compiler.compile(Q(likes__gte=10) | Q(name__in=["Joe"])) == {
        "$or": [{"likes": {"$gte": 10}}, {"name": {"$in": ["Joe"]}}]
    }
    assert compiler.compile(Q(name="Joe", likes__lt=3)) == {
        "$and": [{"name": {"$eq": "Joe"}}, {"likes": {"$lt": 3}}]
    }
    assert compiler.compile(~Q(name="Joe")) == {"$nor": [{"name": {"$eq": "Joe"}}]}


def test_q_nested_path_lookup():
    compiled = FilterCompiler(Writer).compile(Q(posts__url__exists=1))
    assert compiled == {"posts.url": {"$exists": True}}


def test_combine_wraps_multiple_filters():
    compiler = FilterCompiler(Writer)
    assert compiler.combine(None, {}) == {}
    assert compiler.combine({"name": "Joe"}, Q(likes=1)) == {
        "$and": [{"name": "Joe"}, {"likes": {"$eq": 1}}]
    }


def test_unsupported_filters_rejected():
    compiler = FilterCompiler(Writer)
    with pytest.raises(QueryCompileError):
        compiler.compile({"$where": "1"})
    with pytest.raises(QueryCompileError):
        compiler.compile({"name": {"$in": "Joe"}})
    with pytest.raises(QueryCompileError):
        compiler.compile(["name"])


def test_compile_update_plain_keys_become_set():
    assert compile_update(Writer, {"name": "Alex", "nickname": "al"}) == {
        "$set": {"name": "Alex", "nick": "al"}
    }


def test_compile_update_operators():
    assert compile_update(Writer, {"$inc": {"likes": 10}, "$unset": {"nickname": 1}}) == {
        "$inc": {"likes": 10},
        "$unset": {"nick": ""},
    }


def test_compile_update_rejects_bad_input():
    with pytest.raises(QueryCompileError):
        compile_update(Writer, {})
    with pytest.raises(QueryCompileError):
        compile_update(Writer, {"$push": {"likes": 1}})
    with pytest.raises(QueryCompileError):
        compile_update(Writer, {"$inc": {"likes": "ten"}})
