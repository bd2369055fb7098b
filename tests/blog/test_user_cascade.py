import pytest

from userdocs.adapters import AdapterExecutionError, MemoryAdapter
from userdocs.blog import BlogPost, User
from userdocs.persistence import CascadeError, Session


class FailingBlogPostDeletes(MemoryAdapter):
    async def delete_many(self, collection, filter):
        if collection == "blog_posts":
            raise AdapterExecutionError("blog_posts unavailable")
        return await super().delete_many(collection, filter)


async def seed(session):
    joe = User(name="Joe")
    blog_post = BlogPost(title="JS is Great", content="Yep it really is")
    joe.blog_posts.append(blog_post)
    await session.save_all(joe, blog_post)
    return joe, blog_post


async def test_remove_cascades_to_blog_posts(session):
    joe, _ = await seed(session)
    assert await BlogPost.count(session) == 1

    await joe.remove(session)
    assert await BlogPost.count(session) == 0
    assert await User.count(session) == 0


async def test_cascade_leaves_unrelated_blog_posts(session):
    joe, _ = await seed(session)
    other = BlogPost(title="Other")
    await other.save(session)

    await joe.remove(session)
    remaining = await BlogPost.find(session)
    assert [post.pk for post in remaining] == [other.pk]


async def test_failed_cascade_keeps_user():
    session = await Session(FailingBlogPostDeletes()).connect()
    joe, _ = await seed(session)

    with pytest.raises(CascadeError) as excinfo:
        await joe.remove(session)
    assert isinstance(excinfo.value.__cause__, AdapterExecutionError)
    assert await User.find_by_id(session, joe.pk) is not None
    await session.close()


async def test_filter_remove_does_not_cascade(session):
    await seed(session)
    await User.remove(session, {"name": "Joe"})
    assert await BlogPost.count(session) == 1


async def test_find_by_id_and_remove_does_not_cascade(session):
    joe, _ = await seed(session)
    await User.find_by_id_and_remove(session, joe.pk)
    assert await BlogPost.count(session) == 1
