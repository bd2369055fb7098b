"""Security helpers for userdocs."""

from .dsns import DSNConfig, parse_dsn
from .redaction import redact_document, redact_value

__all__ = ["DSNConfig", "parse_dsn", "redact_document", "redact_value"]
