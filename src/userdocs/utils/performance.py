"""
Slow-operation threshold configuration.
"""

from __future__ import annotations

import os

SLOW_QUERY_ENV_VAR = "USERDOCS_SLOW_QUERY_MS"


def resolve_slow_query_ms(*, default: int = 100, override: int | None = None) -> int:
    """
    Resolve the slow-operation threshold: explicit override, then environment, then default.
    """
    if override is not None:
        return override
    raw = os.getenv(SLOW_QUERY_ENV_VAR)
    if raw is None or not raw.strip():
        return default

    # Imported here: adapters depend on utils at import time.
    from ..adapters.base import AdapterConfigurationError

    try:
        value = int(raw)
    except ValueError as exc:
        raise AdapterConfigurationError(
            f"Invalid integer value for '{SLOW_QUERY_ENV_VAR}': {raw!r}"
        ) from exc
    if value < 0:
        raise AdapterConfigurationError(f"'{SLOW_QUERY_ENV_VAR}' must not be negative.")
    return value
