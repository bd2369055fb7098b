"""
Expression tree primitives for query construction.
"""

from __future__ import annotations

from typing import Any, List


AND = "AND"
OR = "OR"


class Q:
    """
    Boolean expression container similar to Django-style Q objects.

    ``Q(name="Joe") | Q(likes__gte=10)`` compiles to a ``$or`` filter.
    """

    def __init__(self, *children: Any, **lookups: Any) -> None:
        self.children: List[Any] = list(children)
        self.children.extend(lookups.items())
        self.connector = AND
        self.negated = False

    def __or__(self, other: "Q") -> "Q":
        return self._combine(other, OR)

    def __and__(self, other: "Q") -> "Q":
        return self._combine(other, AND)

    def __invert__(self) -> "Q":
        q = self._clone()
        q.negated = not q.negated
        return q

    def __repr__(self) -> str:
        prefix = "NOT " if self.negated else ""
        return f"<Q {prefix}{self.connector} {self.children!r}>"

    # Internal helpers -------------------------------------------------
    def _clone(self) -> "Q":
        clone = Q()
        clone.children = list(self.children)
        clone.connector = self.connector
        clone.negated = self.negated
        return clone

    def _combine(self, other: "Q", connector: str) -> "Q":
        if not isinstance(other, Q):
            raise TypeError(f"Cannot combine Q with {type(other).__name__}")
        q = Q()
        q.children = [self._clone(), other._clone()]
        q.connector = connector
        return q

    def is_empty(self) -> bool:
        return not self.children
