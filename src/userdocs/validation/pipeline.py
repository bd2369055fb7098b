"""
Validation pipeline used by documents and sessions.
"""

from __future__ import annotations

from typing import Dict, List

from ..core.document import BaseDocument
from ..core.fields import Field
from ..core.references import EmbeddedListField
from .errors import ValidationError


def validate_instance(instance: BaseDocument) -> None:
    errors: Dict[str, List[str]] = {}
    codes: Dict[str, List[str]] = {}

    for field in instance._meta.get_fields():
        field_name = field.require_name()
        value = getattr(instance, field_name, None)
        try:
            _validate_field(field, value)
        except ValidationError as exc:
            _merge_errors(errors, codes, exc)
        except ValueError as exc:
            _add_error(errors, codes, field_name, str(exc), getattr(exc, "code", "invalid"))

        if isinstance(field, EmbeddedListField) and value:
            for index, item in enumerate(value):
                if item.is_removed:
                    continue
                try:
                    validate_instance(item)
                except ValidationError as exc:
                    _merge_errors(errors, codes, exc, prefix=f"{field_name}.{index}.")

    # Document-level clean hook
    clean_method = getattr(instance, "clean", None)
    if callable(clean_method):
        try:
            clean_method()
        except ValidationError as exc:
            _merge_errors(errors, codes, exc)
        except ValueError as exc:
            _add_error(errors, codes, "__all__", str(exc), getattr(exc, "code", "invalid"))

    if errors:
        raise ValidationError(errors, codes)


def _validate_field(field: Field, value) -> None:
    if field.is_empty(value):
        if field.required:
            field_name = field.require_name()
            raise ValidationError({field_name: [field.required_message]}, {field_name: ["required"]})
        return

    try:
        field.run_validators(value)
    except ValueError as exc:
        field_name = field.require_name()
        raise ValidationError(
            {field_name: [str(exc)]}, {field_name: [getattr(exc, "code", "invalid")]}
        ) from exc


def _add_error(
    errors: Dict[str, List[str]], codes: Dict[str, List[str]], field: str, message: str, code: str
) -> None:
    errors.setdefault(field, []).append(message)
    codes.setdefault(field, []).append(code)


def _merge_errors(
    errors: Dict[str, List[str]],
    codes: Dict[str, List[str]],
    exc: ValidationError,
    prefix: str = "",
) -> None:
    for field, messages in exc.errors.items():
        errors.setdefault(f"{prefix}{field}", []).extend(messages)
    for field, reasons in exc.codes.items():
        codes.setdefault(f"{prefix}{field}", []).extend(reasons)
