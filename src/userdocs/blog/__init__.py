"""
Users and blogs application built on userdocs.
"""

from .demo import bootstrap_session, fetch_user_graph, run_demo, seed_sample_data
from .models import BlogPost, Comment, Post, User

__all__ = [
    "BlogPost",
    "Comment",
    "Post",
    "User",
    "bootstrap_session",
    "fetch_user_graph",
    "run_demo",
    "seed_sample_data",
]
