from .session import DEFAULT_DSN, CascadeError, Session

__all__ = ["CascadeError", "DEFAULT_DSN", "Session"]
