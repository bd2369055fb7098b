"""
Lifecycle hooks registry for userdocs documents.
"""

from .dispatcher import EVENTS, HookDispatcher, hooks

__all__ = ["EVENTS", "HookDispatcher", "hooks"]
