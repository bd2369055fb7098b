import pytest

from userdocs.adapters import AdapterExecutionError
from userdocs.blog import User


async def test_create_saves_a_user(session):
    joe = User(name="Joe")
    assert joe.is_new
    await joe.save(session)
    assert not joe.is_new
    assert await User.count(session) == 1


async def test_read_finds_users_by_name_and_id(session):
    joe = User(name="Joe")
    await joe.save(session)

    users = await User.find(session, {"name": "Joe"})
    assert [user.pk for user in users] == [joe.pk]

    found = await User.find_one(session, {"id": joe.pk})
    assert found.name == "Joe"
    assert (await User.find_by_id(session, joe.pk)).pk == joe.pk


async def test_set_and_save(session):
    joe = User(name="Joe")
    await joe.save(session)
    joe.name = "Alex"
    await joe.save(session)
    assert [user.name for user in await User.find(session)] == ["Alex"]


async def test_instance_update(session):
    joe = User(name="Joe")
    await joe.save(session)
    await joe.update(session, {"name": "Alex"})
    assert [user.name for user in await User.find(session)] == ["Alex"]


async def test_class_update_applies_to_all_matches(session):
    await session.save_all(User(name="Joe"), User(name="Joe"), User(name="Sam"))
    assert await User.update(session, {"name": "Joe"}, {"name": "Alex"}) == 2
    assert sorted(user.name for user in await User.find(session)) == ["Alex", "Alex", "Sam"]


async def test_find_one_and_update(session):
    joe = User(name="Joe")
    await joe.save(session)
    before = await User.find_one_and_update(session, {"name": "Joe"}, {"name": "Alex"})
    assert before.name == "Joe"
    after = await User.find_one_and_update(session, {"name": "Alex"}, {"name": "Sam"}, new=True)
    assert after.name == "Sam"
    assert await User.find_one_and_update(session, {"name": "Nobody"}, {"name": "X"}) is None


async def test_find_by_id_and_update(session):
    joe = User(name="Joe")
    await joe.save(session)
    await User.find_by_id_and_update(session, joe.pk, {"name": "Alex"})
    assert (await User.find_by_id(session, joe.pk)).name == "Alex"


async def test_increment_likes_by_ten(session):
    joe = User(name="Joe")
    await joe.save(session)
    await User.update(session, {"name": "Joe"}, {"$inc": {"likes": 10}})
    assert (await User.find_one(session, {"name": "Joe"})).likes == 10


async def test_instance_remove(session):
    joe = User(name="Joe")
    await joe.save(session)
    await joe.remove(session)
    assert await User.find_one(session, {"name": "Joe"}) is None


async def test_class_remove_deletes_every_match(session):
    await session.save_all(User(name="Joe"), User(name="Joe"))
    assert await User.remove(session, {"name": "Joe"}) == 2
    assert await User.find_one(session, {"name": "Joe"}) is None


async def test_find_one_and_remove(session):
    joe = User(name="Joe")
    await joe.save(session)
    removed = await User.find_one_and_remove(session, {"name": "Joe"})
    assert removed.pk == joe.pk
    assert await User.find_one(session, {"name": "Joe"}) is None


async def test_find_by_id_and_remove(session):
    joe = User(name="Joe")
    await joe.save(session)
    await User.find_by_id_and_remove(session, joe.pk)
    assert await User.find_one(session, {"name": "Joe"}) is None
    assert await User.find_by_id_and_remove(session, joe.pk) is None


async def test_failed_filter_update_writes_nothing(session):
    await User(name="Joe").save(session)

    with pytest.raises(AdapterExecutionError):
        await User.update(session, {"name": "Joe"}, {"$inc": {"likes": 10, "name": 1}})
    with pytest.raises(AdapterExecutionError):
        await User.find_one_and_update(session, {"name": "Joe"}, {"name": "Alex", "$inc": {"posts": 1}})

    joe = await User.find_one(session, {"name": "Joe"})
    assert joe is not None
    assert joe.likes == 0
