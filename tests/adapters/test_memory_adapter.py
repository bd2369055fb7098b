import pytest
from bson import ObjectId

from userdocs.adapters import (
    AdapterConnectionError,
    AdapterExecutionError,
    ConnectionConfig,
    MemoryAdapter,
    MemoryStore,
)
from userdocs.adapters.memory import apply_update, matches


async def make_adapter(store=None):
    adapter = MemoryAdapter(store)
    await adapter.connect(ConnectionConfig.from_dsn("memory://tests"))
    return adapter


def test_matches_comparison_operators():
    doc = {"name": "Joe", "likes": 5}
    assert matches(doc, {"name": "Joe"})
    assert matches(doc, {"likes": {"$gte": 5, "$lt": 10}})
    assert not matches(doc, {"likes": {"$gt": 5}})
    assert matches(doc, {"name": {"$in": ["Joe", "Alex"]}})
    assert matches(doc, {"name": {"$nin": ["Alex"]}})
    assert matches(doc, {"name": {"$ne": "Alex"}})
    assert matches(doc, {"title": {"$exists": False}})
    assert not matches(doc, {"title": "x"})


def test_matches_logical_operators():
    doc = {"name": "Joe", "likes": 5}
    assert matches(doc, {"$or": [{"name": "Alex"}, {"likes": 5}]})
    assert not matches(doc, {"$and": [{"name": "Joe"}, {"likes": 6}]})
    assert not matches(doc, {"$nor": [{"name": "Joe"}]})


def test_matches_arrays_and_dotted_paths():
    first, second = ObjectId(), ObjectId()
    doc = {"blog_posts": [first], "posts": [{"url": "a"}, {"url": "b"}]}
    assert matches(doc, {"blog_posts": first})
    assert not matches(doc, {"blog_posts": second})
    assert matches(doc, {"posts.url": "b"})
    assert matches(doc, {"posts.0.url": "a"})


def test_matches_rejects_unknown_operator():
    with pytest.raises(AdapterExecutionError):
        matches({"likes": 1}, {"likes": {"$regex": "x"}})


def test_apply_update_operators():
    doc = {"name": "Joe", "likes": 1, "extra": True}
    apply_update(doc, {"$set": {"name": "Alex"}, "$inc": {"likes": 10, "views": 2}, "$unset": {"extra": ""}})
    assert doc == {"name": "Alex", "likes": 11, "views": 2}


def test_apply_update_inc_requires_numeric_field():
    with pytest.raises(AdapterExecutionError):
        apply_update({"name": "Joe"}, {"$inc": {"name": 1}})


async def test_insert_and_find_copy_documents():
    adapter = await make_adapter()
    doc = {"name": "Joe", "tags": ["a"]}
    inserted_id = await adapter.insert_one("users", doc)
    doc["tags"].append("b")

    found = await adapter.find_one("users", {"_id": inserted_id})
    assert found == {"_id": inserted_id, "name": "Joe", "tags": ["a"]}
    found["name"] = "changed"
    assert (await adapter.find_one("users", {"_id": inserted_id}))["name"] == "Joe"


async def test_insert_duplicate_id_raises():
    adapter = await make_adapter()
    oid = ObjectId()
    await adapter.insert_one("users", {"_id": oid})
    with pytest.raises(AdapterExecutionError):
        await adapter.insert_one("users", {"_id": oid})


async def test_find_sort_skip_limit():
    adapter = await make_adapter()
    for name, likes in [("a", 3), ("b", 1), ("c", 2), ("d", None)]:
        await adapter.insert_one("users", {"name": name, "likes": likes})

    ascending = await adapter.find("users", {}, sort=[("likes", 1)])
    assert [doc["name"] for doc in ascending] == ["b", "c", "a", "d"]
    descending = await adapter.find("users", {}, sort=[("likes", -1)], skip=1, limit=2)
    assert [doc["name"] for doc in descending] == ["c", "b"]


async def test_update_and_delete_counts():
    adapter = await make_adapter()
    for name in ["Joe", "Joe", "Alex"]:
        await adapter.insert_one("users", {"name": name, "likes": 0})

    assert await adapter.update_many("users", {"name": "Joe"}, {"$inc": {"likes": 10}}) == 2
    assert await adapter.update_one("users", {"name": "Joe"}, {"$set": {"likes": 1}}) == 1
    assert await adapter.count("users", {"likes": 10}) == 1
    assert await adapter.delete_many("users", {"name": "Joe"}) == 2
    assert await adapter.count("users", {}) == 1


async def test_find_one_and_update_returns_pre_or_post_image():
    adapter = await make_adapter()
    await adapter.insert_one("users", {"name": "Joe"})
    before = await adapter.find_one_and_update("users", {"name": "Joe"}, {"$set": {"name": "Alex"}})
    assert before["name"] == "Joe"
    after = await adapter.find_one_and_update(
        "users", {"name": "Alex"}, {"$set": {"name": "Sam"}}, return_new=True
    )
    assert after["name"] == "Sam"
    assert await adapter.find_one_and_update("users", {"name": "Joe"}, {"$set": {"x": 1}}) is None


async def test_find_one_and_delete():
    adapter = await make_adapter()
    await adapter.insert_one("users", {"name": "Joe"})
    removed = await adapter.find_one_and_delete("users", {"name": "Joe"})
    assert removed["name"] == "Joe"
    assert await adapter.find_one_and_delete("users", {"name": "Joe"}) is None


async def test_shared_store_between_adapters():
    store = MemoryStore()
    first = await make_adapter(store)
    second = await make_adapter(store)
    await first.insert_one("users", {"name": "Joe"})
    assert await second.count("users", {}) == 1
    await second.drop_collection("users")
    assert await first.count("users", {}) == 0


async def test_operations_require_connection():
    adapter = MemoryAdapter()
    with pytest.raises(AdapterConnectionError):
        await adapter.find("users", {})


def test_apply_update_inc_rejects_null_field():
    with pytest.raises(AdapterExecutionError):
        apply_update({"likes": None}, {"$inc": {"likes": 1}})


async def test_failed_update_leaves_document_untouched():
    adapter = await make_adapter()
    await adapter.insert_one("users", {"name": "Joe", "likes": 0})

    with pytest.raises(AdapterExecutionError):
        await adapter.update_many("users", {"name": "Joe"}, {"$inc": {"likes": 10, "name": 1}})
    with pytest.raises(AdapterExecutionError):
        await adapter.find_one_and_update(
            "users", {"name": "Joe"}, {"$set": {"name": "Alex"}, "$inc": {"name": 1}}
        )

    stored = await adapter.find_one("users", {})
    assert stored["name"] == "Joe"
    assert stored["likes"] == 0
