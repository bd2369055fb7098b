from .compiler import FilterCompiler, QueryCompileError, compile_update
from .expressions import Q
from .populate import PopulateSpec, parse_populate, populate
from .queryset import QueryManager, QuerySet

__all__ = [
    "FilterCompiler",
    "PopulateSpec",
    "Q",
    "QueryCompileError",
    "QueryManager",
    "QuerySet",
    "compile_update",
    "parse_populate",
    "populate",
]
