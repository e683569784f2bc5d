"""Structural checks for form schemas.

Collects every violation in one pass so a caller can show all problems at
once.  Pure logic with no I/O, no formula evaluation and no cycle detection
(see ``form_engine.graph.dependencies`` for cycles).

Usage:
    from form_engine.fields.structure import check_schema, is_structurally_sound

    result = check_schema(schema)
    if not result.valid:
        print(result.format_report())

    is_structurally_sound(schema)  # raises SchemaError listing all violations
"""

from collections import Counter

from pydantic import BaseModel, Field as PydanticField

from form_engine.errors import SchemaError
from form_engine.fields.models import Field, FormSchema


# ============================================================================
# Result Models
# ============================================================================


class SchemaViolation(BaseModel):
    """A single structural problem attributed to a field."""

    field_id: str
    code: str  # duplicate_id, self_parent, missing_parent, ...
    message: str = ""


class SchemaCheckResult(BaseModel):
    """Result of a structural schema check.

    Example:
        >>> result = SchemaCheckResult(valid=True)
        >>> result.error_count
        0
        >>> result.format_report()
        'Schema valid'
    """

    valid: bool
    violations: list[SchemaViolation] = PydanticField(default_factory=list)

    @property
    def error_count(self) -> int:
        """Number of violations found."""
        return len(self.violations)

    def for_field(self, field_id: str) -> list[SchemaViolation]:
        """Violations attributed to *field_id*."""
        return [v for v in self.violations if v.field_id == field_id]

    def format_report(self) -> str:
        """Format the check result as a human-readable report."""
        if self.valid:
            return "Schema valid"

        lines = [f"Schema has {self.error_count} problem(s):"]
        for violation in self.violations:
            lines.append(f"  - [{violation.code}] {violation.field_id}: {violation.message}")
        return "\n".join(lines)


# ============================================================================
# Checks
# ============================================================================


def _option_violations(field: Field) -> list[SchemaViolation]:
    violations: list[SchemaViolation] = []

    if not field.type.is_choice:
        if field.options:
            violations.append(
                SchemaViolation(
                    field_id=field.id,
                    code="unexpected_options",
                    message=f"Options are only allowed on choice fields, not '{field.type.value}'",
                )
            )
        return violations

    options = [o for o in (field.options or []) if o.strip()]
    if not options:
        violations.append(
            SchemaViolation(
                field_id=field.id,
                code="missing_options",
                message=f"Choice field '{field.label or field.id}' needs at least one option",
            )
        )
        return violations

    if len(options) != len(field.options or []):
        violations.append(
            SchemaViolation(
                field_id=field.id,
                code="blank_options",
                message="Options must not be blank",
            )
        )

    repeated = sorted(o for o, count in Counter(field.options or []).items() if count > 1)
    if repeated:
        violations.append(
            SchemaViolation(
                field_id=field.id,
                code="duplicate_options",
                message=f"Options must be unique, repeated: {', '.join(repeated)}",
            )
        )
    return violations


def is_valid_options(field: Field) -> bool:
    """Check a field's options against its type.

    Choice fields need a non-empty list of unique, non-blank options;
    other fields must not carry options.

    Examples:
        >>> is_valid_options(Field(id="a", type="radio", options=["Yes", "No"]))
        True
        >>> is_valid_options(Field(id="a", type="select", options=[]))
        False
        >>> is_valid_options(Field(id="a", type="text"))
        True
    """
    return not _option_violations(field)


def check_schema(schema: FormSchema) -> SchemaCheckResult:
    """Check a schema's structure and collect every violation.

    Checks:
    - Field ids are unique
    - Derived fields do not list themselves as a parent
    - Every parent id refers to another field of the schema
    - Derived fields have a non-blank formula
    - Choice fields have non-empty, unique options; other fields have none
    - ``min_length <= max_length`` when both are set

    Args:
        schema: The form schema to check.

    Returns:
        ``SchemaCheckResult`` with ``valid`` and the list of violations in
        schema field order.
    """
    violations: list[SchemaViolation] = []
    ids = schema.field_ids()
    known_ids = set(ids)

    for field_id, count in Counter(ids).items():
        if count > 1:
            violations.append(
                SchemaViolation(
                    field_id=field_id,
                    code="duplicate_id",
                    message=f"Field id used {count} times",
                )
            )

    for field in schema.fields:
        violations.extend(_option_violations(field))

        if field.validation is not None:
            low = field.validation.min_length
            high = field.validation.max_length
            if low is not None and high is not None and low > high:
                violations.append(
                    SchemaViolation(
                        field_id=field.id,
                        code="length_bounds",
                        message=f"minLength ({low}) is greater than maxLength ({high})",
                    )
                )

        if field.derived is None:
            continue

        if not field.derived.formula.strip():
            violations.append(
                SchemaViolation(
                    field_id=field.id,
                    code="empty_formula",
                    message="Derived field has no formula",
                )
            )

        for parent in field.derived.parents:
            if parent == field.id:
                violations.append(
                    SchemaViolation(
                        field_id=field.id,
                        code="self_parent",
                        message="Derived field lists itself as a parent",
                    )
                )
            elif parent not in known_ids:
                violations.append(
                    SchemaViolation(
                        field_id=field.id,
                        code="missing_parent",
                        message=f"Parent '{parent}' does not exist",
                    )
                )

    return SchemaCheckResult(valid=not violations, violations=violations)


def is_structurally_sound(schema: FormSchema) -> bool:
    """Return True if *schema* passes ``check_schema``.

    Raises:
        SchemaError: Listing every violation found.
    """
    result = check_schema(schema)
    if not result.valid:
        raise SchemaError(result)
    return True
