"""Pydantic models for form fields and form schemas.

This module contains the form-domain models:
- Field models: FieldType, ValidationSpec, DerivedSpec, Field
- Form models: FormSchema, Submission

Python attributes are snake_case.  The persisted JSON layout uses the
camelCase keys, so every model is dumped with
``by_alias=True`` (see ``FormSchema.to_json_dict``).
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field as PydanticField, field_validator


class FieldType(str, Enum):
    """Closed set of field types, valued by their persisted names."""

    TEXT = "text"  # short text
    NUMBER = "number"
    TEXTAREA = "textarea"  # long text
    SELECT = "select"  # single select
    RADIO = "radio"  # single choice group
    CHECKBOX = "checkbox"  # multi choice group
    DATE = "date"

    @property
    def is_choice(self) -> bool:
        """True for types whose values come from ``options``."""
        return self in CHOICE_TYPES

    @property
    def is_multi_valued(self) -> bool:
        """True for types whose value is a list of options."""
        return self is FieldType.CHECKBOX


CHOICE_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX})


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)


# ============================================================================
# Field Models
# ============================================================================


class ValidationSpec(_CamelModel):
    """Declarative validation rules attached to a field.

    ``max_length >= min_length`` is not enforced here;
    ``check_schema`` reports it as a violation.

    Example:
        >>> spec = ValidationSpec(minLength=3, email=True)
        >>> spec.min_length, spec.requires_email_format
        (3, True)
    """

    min_length: int | None = PydanticField(default=None, alias="minLength", ge=0)
    max_length: int | None = PydanticField(default=None, alias="maxLength", ge=0)
    requires_email_format: bool = PydanticField(default=False, alias="email")
    requires_password_rule: bool = PydanticField(default=False, alias="passwordRule")


class DerivedSpec(_CamelModel):
    """Formula computing a field's value from its parents."""

    parents: list[str] = PydanticField(default_factory=list)
    formula: str = ""

    @field_validator("parents")
    @classmethod
    def _dedupe_parents(cls, parents: list[str]) -> list[str]:
        # Keeps declared order; repeated ids collapse to the first occurrence.
        return list(dict.fromkeys(parents))


class Field(_CamelModel):
    """A single form field.

    ``id`` is fixed at creation; assigning to it raises ``ValueError``.

    Example:
        >>> field = Field(id="email", type="text", label="Email", required=True)
        >>> field.type
        <FieldType.TEXT: 'text'>
    """

    id: str
    type: FieldType = FieldType.TEXT
    label: str = ""
    required: bool = False
    default_value: Any = PydanticField(default=None, alias="defaultValue")
    options: list[str] | None = None
    validation: ValidationSpec | None = None
    derived: DerivedSpec | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "id" and "id" in self.__dict__:
            raise ValueError(f"Field id is immutable: {self.id}")
        super().__setattr__(name, value)

    @property
    def is_derived(self) -> bool:
        """True if the field's value is computed by a formula."""
        return self.derived is not None


# ============================================================================
# Form Models
# ============================================================================


class FormSchema(_CamelModel):
    """A saved form: a name, timestamps, and an ordered list of fields.

    Field order is display order and the only ordering authority.
    """

    name: str
    created_at: str = PydanticField(default="", alias="createdAt")
    updated_at: str | None = PydanticField(default=None, alias="updatedAt")
    fields: list[Field] = PydanticField(default_factory=list)

    def field_ids(self) -> list[str]:
        """Field ids in schema order."""
        return [f.id for f in self.fields]

    def get_field(self, field_id: str) -> Field:
        """Return the field with *field_id*.

        Raises:
            KeyError: If no field has that id.
        """
        for field in self.fields:
            if field.id == field_id:
                return field
        raise KeyError(f"Field '{field_id}' not found in form '{self.name}'")

    def derived_fields(self) -> list[Field]:
        """Fields carrying a derived spec, in schema order."""
        return [f for f in self.fields if f.derived is not None]

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to the persisted JSON layout (camelCase keys, nulls kept)."""
        return self.model_dump(mode="json", by_alias=True)


class Submission(_CamelModel):
    """Values entered into a form and accepted at submit time."""

    form_name: str = PydanticField(alias="formName")
    submitted_at: str = PydanticField(alias="submittedAt")
    values: dict[str, Any] = PydanticField(default_factory=dict)
