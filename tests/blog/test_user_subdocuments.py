import pytest

from userdocs.blog import Post, User


def test_post_count_is_computed():
    assert User(name="Joe").post_count() == 0
    assert User(name="Joe", posts=[{"url": "a"}]).post_count() == 1
    joe = User(name="Joe", posts=[{"url": "a"}, {"url": "b"}, {"url": "c"}])
    assert joe.post_count() == 3
    assert "post_count" not in joe.to_document()


@pytest.mark.parametrize(
    "posts", [[], [{"url": "a"}], [{"url": "a"}, {"url": "b"}, {"url": "c"}]], ids=["none", "one", "three"]
)
async def test_post_count_after_reload(session, posts):
    joe = User(name="Joe", posts=posts)
    await joe.save(session)
    loaded = await User.find_by_id(session, joe.pk)
    assert loaded.post_count() == len(posts)


async def test_create_embedded_post(session):
    joe = User(name="Joe", posts=[{"url": "https://example.com/post"}])
    await joe.save(session)

    loaded = await User.find_one(session, {"name": "Joe"})
    assert isinstance(loaded.posts[0], Post)
    assert loaded.posts[0].url == "https://example.com/post"
    assert loaded.posts[0].created_at is not None


async def test_push_post_onto_loaded_user(session):
    joe = User(name="Joe")
    await joe.save(session)

    loaded = await User.find_one(session, {"name": "Joe"})
    loaded.posts.append({"url": "https://example.com/new"})
    await loaded.save(session)

    reloaded = await User.find_one(session, {"name": "Joe"})
    assert [post.url for post in reloaded.posts] == ["https://example.com/new"]


async def test_remove_embedded_post(session):
    joe = User(name="Joe", posts=[{"url": "a"}, {"url": "b"}])
    await joe.save(session)

    loaded = await User.find_one(session, {"name": "Joe"})
    loaded.posts[0].remove()
    await loaded.save(session)
    assert loaded.post_count() == 1

    reloaded = await User.find_one(session, {"name": "Joe"})
    assert reloaded.post_count() == 1
    assert reloaded.posts[0].url == "b"
