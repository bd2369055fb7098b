"""
Validation utilities exposed at the package level.
"""

from .errors import InvalidValue, ValidationError
from .pipeline import validate_instance
from .validators import MaxValueValidator, MinLengthValidator, MinValueValidator, RegexValidator

__all__ = [
    "InvalidValue",
    "ValidationError",
    "validate_instance",
    "MinLengthValidator",
    "MinValueValidator",
    "MaxValueValidator",
    "RegexValidator",
]
