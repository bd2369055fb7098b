"""
Storage adapter interfaces and implementations.
"""

from .base import (
    DEFAULT_DSN_ENV_VAR,
    AdapterConfigurationError,
    AdapterConnectionError,
    AdapterError,
    AdapterExecutionError,
    ConnectionConfig,
    DocumentAdapter,
)
from .memory import MemoryAdapter, MemoryStore
from .mongo import MongoAdapter


def create_adapter(config: ConnectionConfig) -> DocumentAdapter:
    """
    Pick an adapter for the DSN scheme of ``config``.
    """

    scheme = config.scheme
    if scheme == "memory":
        return MemoryAdapter()
    if scheme in {"mongodb", "mongodb+srv"}:
        return MongoAdapter()
    raise AdapterConfigurationError(f"Unsupported DSN scheme '{scheme}'")


__all__ = [
    "DEFAULT_DSN_ENV_VAR",
    "ConnectionConfig",
    "DocumentAdapter",
    "AdapterError",
    "AdapterConfigurationError",
    "AdapterConnectionError",
    "AdapterExecutionError",
    "MemoryAdapter",
    "MemoryStore",
    "MongoAdapter",
    "create_adapter",
]
