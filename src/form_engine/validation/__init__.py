"""Validation engine: ordered declarative rules over field values.

Usage:
    >>> from form_engine.validation import validate, validate_all, ValidationError
"""

from form_engine.validation.rules import (
    ValidationError,
    ValidationRule,
    is_empty,
    validate,
    validate_all,
)

__all__ = [
    "ValidationError",
    "ValidationRule",
    "is_empty",
    "validate",
    "validate_all",
]
