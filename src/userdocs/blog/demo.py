"""
Utility helpers for running the users and blogs example end-to-end.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from ..persistence import Session
from ..utils import configure_logging
from .models import BlogPost, Comment, Post, User

DEFAULT_DSN = "memory://blog_demo"


async def bootstrap_session(dsn: str = DEFAULT_DSN) -> Session:
    """
    Create and connect a session for ``dsn``.
    """

    session = Session(dsn=dsn)
    await session.connect()
    return session


async def seed_sample_data(session: Session) -> Dict[str, Any]:
    """
    Store Joe with one embedded post, one blog post and a comment written by Joe.
    """

    joe = User(name="Joe", posts=[Post(url="https://example.com/hello")])
    blog_post = BlogPost(title="JS is Great", content="Yep it really is")
    comment = Comment(content="Congrats on great post", user=joe)

    joe.blog_posts.append(blog_post)
    blog_post.comments.append(comment)

    await session.save_all(joe, blog_post, comment)
    return {"user": joe.pk, "blog_post": blog_post.pk, "comment": comment.pk}


async def fetch_user_graph(session: Session, name: str = "Joe") -> Optional[User]:
    """
    Load a user with blog posts, their comments and each comment's author.
    """

    return await User.find_one(session, {"name": name}).populate(
        {
            "path": "blog_posts",
            "populate": {
                "path": "comments",
                "model": "Comment",
                "populate": {"path": "user", "model": "User"},
            },
        }
    )


async def run_demo(dsn: str = DEFAULT_DSN) -> Dict[str, Any]:
    """
    Seed a store, load the full user graph and summarise it.
    """

    session = await bootstrap_session(dsn)
    try:
        await seed_sample_data(session)
        user = await fetch_user_graph(session)
        if user is None:
            return {}
        return {
            "user": user.name,
            "post_count": user.post_count(),
            "blog_posts": [
                {
                    "title": blog_post.title,
                    "comments": [
                        {
                            "content": comment.content,
                            "author": comment.user.name if comment.user else None,
                        }
                        for comment in blog_post.comments
                        if comment is not None
                    ],
                }
                for blog_post in user.blog_posts
                if blog_post is not None
            ],
        }
    finally:
        await session.close()


def main() -> None:
    configure_logging()
    print(asyncio.run(run_demo()))


if __name__ == "__main__":
    main()
