"""Redaction helpers for logged filters and documents."""

from __future__ import annotations

from typing import Any, Mapping

REDACTED_VALUE = "***"

_SENSITIVE_KEY_TOKENS = (
    "password",
    "passwd",
    "pwd",
    "secret",
    "token",
    "apikey",
    "api_key",
    "access_key",
    "private_key",
    "tlscertificatekeyfilepassword",
)


def _compact(value: str) -> str:
    return "".join(ch for ch in value if ch.isalnum())


def is_sensitive_key(key: str) -> bool:
    normalized = key.lower()
    compact = _compact(normalized)
    return any(token in normalized or _compact(token) in compact for token in _SENSITIVE_KEY_TOKENS)


def redact_value(value: Any, *, key: str | None = None) -> Any:
    """
    Recursively mask values stored under credential-like keys.

    Query operators (``$in``, ``$set`` ...) are walked like ordinary keys so a
    filter such as ``{"password": {"$in": [...]}}`` is masked as a whole.
    """
    if key is not None and is_sensitive_key(str(key)):
        return REDACTED_VALUE
    if isinstance(value, Mapping):
        return {k: redact_value(v, key=str(k)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(redact_value(item) for item in value)
    return value


def redact_document(document: Mapping[str, Any] | None) -> dict[str, Any] | None:
    if document is None:
        return None
    return redact_value(document)
