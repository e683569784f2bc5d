"""Rule-based validation of field values.

Rules run in a fixed order and the first failure wins:

1. required
2. minimum length
3. maximum length
4. email format
5. password rule

Pure logic: the same ``(field, value)`` always yields the same verdict.
Failures are returned as ``ValidationError`` data, never raised.

Usage:
    from form_engine.validation.rules import validate, validate_all

    error = validate(field, "ab")
    if error is not None:
        print(error.message)

    errors = validate_all(schema, values)  # {field_id: ValidationError}
"""

import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel

from form_engine.fields.models import Field, FormSchema

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PASSWORD_PATTERN = re.compile(r"(?=.*\d).{8,}")


class ValidationRule(str, Enum):
    """Validation rules, in evaluation order."""

    REQUIRED = "required"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    EMAIL = "email"
    PASSWORD = "password"


class ValidationError(BaseModel):
    """A failed validation rule attributed to a field.

    Example:
        >>> error = ValidationError(field_id="email", rule="email", message="Invalid email format")
        >>> error.rule
        <ValidationRule.EMAIL: 'email'>
    """

    field_id: str
    rule: ValidationRule
    message: str


def is_empty(value: Any) -> bool:
    """True for values that do not satisfy ``required``.

    ``None``, blank strings, and empty lists are empty.  ``False`` and ``0``
    are real values.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _has_length(value: Any) -> bool:
    return isinstance(value, (str, list, tuple))


def validate(field: Field, value: Any) -> ValidationError | None:
    """Validate *value* against *field*'s rules.

    Args:
        field: Field carrying ``required`` and an optional ``validation`` spec.
        value: Candidate value.  Multi-choice values are lists and are
            measured by item count.

    Returns:
        The first failing rule as a ``ValidationError``, or ``None`` when the
        value passes every applicable rule.

    Examples:
        >>> validate(Field(id="name", required=True), "")
        ValidationError(field_id='name', rule=<ValidationRule.REQUIRED: 'required'>, message='This field is required')
        >>> validate(Field(id="name", required=True), "Ada") is None
        True
    """
    if field.required and is_empty(value):
        return ValidationError(
            field_id=field.id,
            rule=ValidationRule.REQUIRED,
            message="This field is required",
        )

    spec = field.validation
    if spec is None:
        return None

    if spec.min_length is not None and _has_length(value) and len(value) < spec.min_length:
        return ValidationError(
            field_id=field.id,
            rule=ValidationRule.MIN_LENGTH,
            message=f"Minimum length is {spec.min_length}",
        )

    if spec.max_length is not None and _has_length(value) and len(value) > spec.max_length:
        return ValidationError(
            field_id=field.id,
            rule=ValidationRule.MAX_LENGTH,
            message=f"Maximum length is {spec.max_length}",
        )

    # Format rules only apply to non-empty text
    if not isinstance(value, str) or not value:
        return None

    if spec.requires_email_format and not EMAIL_PATTERN.fullmatch(value):
        return ValidationError(
            field_id=field.id,
            rule=ValidationRule.EMAIL,
            message="Invalid email format",
        )

    if spec.requires_password_rule and not PASSWORD_PATTERN.fullmatch(value):
        return ValidationError(
            field_id=field.id,
            rule=ValidationRule.PASSWORD,
            message="Password must be at least 8 characters and contain a number",
        )

    return None


def validate_all(
    schema: FormSchema,
    values: Mapping[str, Any],
) -> dict[str, ValidationError]:
    """Validate every field of *schema* against *values*.

    Used at submit time.  Absent values are validated as ``None``.

    Returns:
        Mapping of field id to its first failing rule, in schema order.
        Fields that pass are omitted; an empty dict means the form is valid.
    """
    errors: dict[str, ValidationError] = {}
    for field in schema.fields:
        error = validate(field, values.get(field.id))
        if error is not None:
            errors[field.id] = error
    return errors
