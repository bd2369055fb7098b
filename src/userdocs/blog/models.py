"""
Data models for the users and blogs application.
"""

from __future__ import annotations

from typing import Any

from ..adapters import AdapterError
from ..core import (
    DateTimeField,
    Document,
    EmbeddedDocument,
    EmbeddedListField,
    IntegerField,
    ReferenceField,
    ReferenceListField,
    StringField,
)
from ..persistence import CascadeError, Session
from ..validation import MinLengthValidator


class Post(EmbeddedDocument):
    url = StringField()
    created_at = DateTimeField(auto_now_add=True)


class User(Document):
    name = StringField(
        required="Name is required.",
        validators=[MinLengthValidator(2, "Name must be longer than 1 character.")],
    )
    posts = EmbeddedListField(Post)
    likes = IntegerField(default=0)
    blog_posts = ReferenceListField("BlogPost")

    def post_count(self) -> int:
        """Number of embedded posts; computed on access, never stored."""
        return len(self.posts)


class BlogPost(Document):
    title = StringField()
    content = StringField()
    comments = ReferenceListField("Comment")


class Comment(Document):
    content = StringField()
    user = ReferenceField("User")


async def remove_blog_posts(user: User, *, session: Session, **context: Any) -> None:
    """
    Delete the blog posts a user references before the user itself goes.
    """
    ids = User.blog_posts.to_storage(user.blog_posts)
    if not ids:
        return
    try:
        await session.query(BlogPost).remove({"id": {"$in": ids}})
    except AdapterError as exc:
        raise CascadeError(f"Could not remove blog posts of user {user.pk}") from exc


User.register_hook("before_delete", remove_blog_posts)
