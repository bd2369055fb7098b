"""
Adapter protocol definitions for userdocs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..security.dsns import DSNConfig, parse_dsn

DEFAULT_DSN_ENV_VAR = "USERDOCS_DATABASE_URL"
USERDOCS_OPTIONS = frozenset({"timeout"})

Filter = Mapping[str, Any]
Update = Mapping[str, Any]
Sort = Sequence[tuple[str, int]]


class AdapterError(RuntimeError):
    """Base error for adapter-related failures."""


class AdapterConfigurationError(AdapterError):
    """Raised when configuration or required dependencies are invalid."""


class AdapterConnectionError(AdapterError):
    """Raised when establishing or using a connection fails."""


class AdapterExecutionError(AdapterError):
    """Raised when a storage operation fails or is malformed."""


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(value: str, *, key: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise AdapterConfigurationError(f"Invalid boolean value for '{key}': {value!r}")


def _parse_float(value: str, *, key: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise AdapterConfigurationError(f"Invalid float value for '{key}': {value!r}") from exc


def _parse_int(value: str, *, key: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise AdapterConfigurationError(f"Invalid integer value for '{key}': {value!r}") from exc


def _parse_option_values(query: dict[str, str]) -> dict[str, Any]:
    """
    Convert MongoDB URI options to Python values: ``*MS`` options are integers,
    ``tls``/``retryWrites``/``directConnection`` are booleans.
    """
    options: dict[str, Any] = {}
    for key, value in query.items():
        if key.endswith("MS"):
            options[key] = _parse_int(value, key=key)
        elif key in {"tls", "ssl", "retryWrites", "retryReads", "directConnection"}:
            options[key] = _parse_bool(value, key=key)
        else:
            options[key] = value
    return options


@dataclass
class ConnectionConfig:
    """
    Normalized connection configuration for adapters.
    """

    url: str
    database: str | None = None
    timeout: float | None = None
    options: dict[str, Any] | None = None
    dsn: DSNConfig | None = None
    source: str | None = None

    @classmethod
    def from_dsn(cls, dsn: str, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a connection config by parsing the DSN string.
        """

        try:
            parsed = parse_dsn(dsn)
        except ValueError as exc:
            raise AdapterConfigurationError(str(exc)) from exc
        query = dict(parsed.query)

        parsed_timeout = None
        if "timeout" in query:
            parsed_timeout = _parse_float(query.pop("timeout"), key="timeout")
        options = _parse_option_values(query)
        options.update(kwargs.pop("options", None) or {})

        timeout = kwargs.pop("timeout", parsed_timeout)
        database = kwargs.pop("database", parsed.database)

        return cls(
            url=dsn,
            dsn=parsed,
            database=database,
            timeout=timeout,
            options=options or None,
            **kwargs,
        )

    @classmethod
    def from_env(cls, env_var: str = DEFAULT_DSN_ENV_VAR, **kwargs: Any) -> "ConnectionConfig":
        """
        Build a config from an environment variable containing a DSN.
        """

        value = os.getenv(env_var)
        if not value:
            raise AdapterConfigurationError(f"Environment variable {env_var} is not set")
        return cls.from_dsn(value, source=env_var, **kwargs)

    @property
    def scheme(self) -> str:
        if self.dsn:
            return self.dsn.scheme
        return self.url.split("://", 1)[0]

    def client_url(self) -> str:
        """
        Return the DSN for the storage driver, without options only userdocs understands.
        """

        parts = urlsplit(self.url)
        query = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key not in USERDOCS_OPTIONS
        ]
        return urlunsplit(parts._replace(query=urlencode(query)))

    def redacted_dsn(self) -> str:
        """
        Return a DSN safe for logging (credentials removed).
        """

        if self.dsn:
            return self.dsn.redacted()
        return self.url

    def descriptive_label(self) -> str:
        """
        Describe the config source for diagnostics.
        """

        redacted = self.redacted_dsn()
        if self.source:
            return f"{self.source} ({redacted})"
        return redacted


class DocumentAdapter(Protocol):
    """
    Asynchronous storage client interface consumed by :class:`~userdocs.persistence.Session`.

    Filters and updates use the MongoDB query language subset produced by
    :mod:`userdocs.query.compiler`.
    """

    slow_query_ms: int

    async def connect(self, config: ConnectionConfig) -> None:
        """
        Establish the connection; raise :class:`AdapterConnectionError` on failure.
        """

    async def close(self) -> None:
        """
        Close underlying resources. Implementations should be idempotent.
        """

    async def insert_one(self, collection: str, document: Mapping[str, Any]) -> Any:
        """
        Insert a document and return its ``_id``.
        """

    async def find(
        self,
        collection: str,
        filter: Filter,
        *,
        sort: Sort | None = None,
        skip: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Return all matching documents in natural (insertion) order unless sorted.
        """

    async def find_one(self, collection: str, filter: Filter) -> dict[str, Any] | None:
        """
        Return the first matching document or ``None``.
        """

    async def count(self, collection: str, filter: Filter) -> int:
        """
        Count matching documents.
        """

    async def update_one(self, collection: str, filter: Filter, update: Update) -> int:
        """
        Apply ``update`` to the first match; return the matched count (0 or 1).
        """

    async def update_many(self, collection: str, filter: Filter, update: Update) -> int:
        """
        Apply ``update`` to every match; return the matched count.
        """

    async def find_one_and_update(
        self, collection: str, filter: Filter, update: Update, *, return_new: bool = False
    ) -> dict[str, Any] | None:
        """
        Atomically update the first match and return its pre- or post-image.
        """

    async def find_one_and_delete(self, collection: str, filter: Filter) -> dict[str, Any] | None:
        """
        Atomically delete the first match and return it.
        """

    async def delete_one(self, collection: str, filter: Filter) -> int:
        """
        Delete the first match; return the deleted count.
        """

    async def delete_many(self, collection: str, filter: Filter) -> int:
        """
        Delete every match; return the deleted count.
        """

    async def drop_collection(self, collection: str) -> None:
        """
        Drop a whole collection. Used by test setup.
        """
