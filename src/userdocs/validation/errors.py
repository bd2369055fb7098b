"""
Validation error hierarchy for userdocs.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional


class ValidationError(Exception):
    """
    Aggregated validation error storing field-to-messages and field-to-reasons mappings.

    ``errors["name"]`` holds human-readable messages, ``codes["name"]`` the
    matching machine-readable reasons (``"required"``, ``"tooShort"`` ...).
    """

    def __init__(
        self,
        errors: Mapping[str, List[str]],
        codes: Optional[Mapping[str, List[str]]] = None,
    ) -> None:
        self.errors: Dict[str, List[str]] = {
            key: list(messages) for key, messages in errors.items()
        }
        self.codes: Dict[str, List[str]] = {
            key: list(reasons) for key, reasons in (codes or {}).items()
        }
        for key, messages in self.errors.items():
            reasons = self.codes.setdefault(key, [])
            reasons.extend(["invalid"] * (len(messages) - len(reasons)))
        message = self._format_message()
        super().__init__(message)

    def message(self, field: str) -> Optional[str]:
        messages = self.errors.get(field)
        return messages[0] if messages else None

    def reason(self, field: str) -> Optional[str]:
        reasons = self.codes.get(field)
        return reasons[0] if reasons else None

    def _format_message(self) -> str:
        segments = []
        for field, messages in self.errors.items():
            prefix = field if field != "__all__" else "non-field"
            combined = "; ".join(messages)
            segments.append(f"{prefix}: {combined}")
        return "; ".join(segments)


class InvalidValue(ValueError):
    """
    Raised by validators; ``code`` becomes the reason recorded on :class:`ValidationError`.
    """

    def __init__(self, message: str, code: str = "invalid") -> None:
        super().__init__(message)
        self.code = code
