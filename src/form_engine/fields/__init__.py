"""Form field models and structural checks.

Usage:
    >>> from form_engine.fields import Field, FieldType, FormSchema
    >>> from form_engine.fields import check_schema, is_structurally_sound
"""

from form_engine.fields.models import (
    CHOICE_TYPES,
    DerivedSpec,
    Field,
    FieldType,
    FormSchema,
    Submission,
    ValidationSpec,
)
from form_engine.fields.structure import (
    SchemaCheckResult,
    SchemaViolation,
    check_schema,
    is_structurally_sound,
    is_valid_options,
)

__all__ = [
    "CHOICE_TYPES",
    "DerivedSpec",
    "Field",
    "FieldType",
    "FormSchema",
    "Submission",
    "ValidationSpec",
    "SchemaCheckResult",
    "SchemaViolation",
    "check_schema",
    "is_structurally_sound",
    "is_valid_options",
]
