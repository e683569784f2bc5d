"""Tests for the field model and structural schema checks.

Verifies that:
- Field models accept the persisted camelCase layout and dump it back
- Field ids are immutable and property updates are validated
- ``is_valid_options`` enforces options for choice types only
- ``check_schema`` collects every violation, not just the first
- ``is_structurally_sound`` raises ``SchemaError`` carrying all violations
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from form_engine.errors import SchemaError
from form_engine.fields.models import (
    DerivedSpec,
    Field,
    FieldType,
    FormSchema,
    ValidationSpec,
)
from form_engine.fields.structure import (
    SchemaCheckResult,
    check_schema,
    is_structurally_sound,
    is_valid_options,
)


# ============================================================================
# Models
# ============================================================================


class TestFieldModel:
    """Tests for Field, ValidationSpec and DerivedSpec."""

    def test_accepts_camel_case_layout(self) -> None:
        """Persisted camelCase keys populate snake_case attributes."""
        field = Field.model_validate(
            {
                "id": "pw",
                "type": "text",
                "label": "Password",
                "required": True,
                "defaultValue": "",
                "validation": {"minLength": 8, "passwordRule": True},
            }
        )

        assert field.default_value == ""
        assert field.validation is not None
        assert field.validation.min_length == 8
        assert field.validation.requires_password_rule is True
        assert field.validation.requires_email_format is False

    def test_dumps_camel_case_layout(self) -> None:
        """Dumping by alias gives the persisted layout, with nulls kept."""
        field = Field(id="a", type=FieldType.NUMBER, label="Age")
        data = field.model_dump(mode="json", by_alias=True)

        assert data["type"] == "number"
        assert "defaultValue" in data
        assert data["defaultValue"] is None
        assert data["derived"] is None

    def test_unknown_type_rejected(self) -> None:
        """Field types form a closed set."""
        with pytest.raises(PydanticValidationError):
            Field(id="a", type="colour")

    def test_id_is_immutable(self) -> None:
        """Reassigning a field id raises ValueError."""
        field = Field(id="a")
        with pytest.raises(ValueError):
            field.id = "b"
        assert field.id == "a"

    def test_assignment_is_validated(self) -> None:
        """Property updates are type-checked."""
        field = Field(id="a")
        field.validation = {"maxLength": 5}
        assert isinstance(field.validation, ValidationSpec)
        assert field.validation.max_length == 5

        with pytest.raises(PydanticValidationError):
            field.validation = {"minLength": -1}

    def test_derived_parents_deduplicated_in_order(self) -> None:
        """Repeated parent ids collapse to the first occurrence."""
        spec = DerivedSpec(parents=["b", "a", "b"], formula="a + b")
        assert spec.parents == ["b", "a"]

    def test_choice_type_flags(self) -> None:
        """select/radio/checkbox are choice types; only checkbox is multi-valued."""
        assert FieldType.SELECT.is_choice
        assert FieldType.RADIO.is_choice
        assert FieldType.CHECKBOX.is_choice
        assert not FieldType.TEXT.is_choice
        assert FieldType.CHECKBOX.is_multi_valued
        assert not FieldType.RADIO.is_multi_valued


class TestFormSchemaModel:
    """Tests for FormSchema helpers and layout."""

    def test_field_order_preserved(self) -> None:
        """Fields keep their declared order through a dump/validate cycle."""
        schema = FormSchema(
            name="f",
            created_at="2025-01-01T00:00:00+00:00",
            fields=[Field(id="z"), Field(id="a"), Field(id="m")],
        )
        restored = FormSchema.model_validate(schema.to_json_dict())

        assert restored.field_ids() == ["z", "a", "m"]
        assert restored.created_at == schema.created_at

    def test_to_json_dict_uses_persisted_keys(self) -> None:
        """to_json_dict writes createdAt/updatedAt/fields."""
        data = FormSchema(name="f", created_at="t").to_json_dict()
        assert set(data) == {"name", "createdAt", "updatedAt", "fields"}

    def test_get_field_unknown_raises_key_error(self) -> None:
        """get_field() raises KeyError for unknown ids."""
        schema = FormSchema(name="f", fields=[Field(id="a")])
        with pytest.raises(KeyError):
            schema.get_field("missing")

    def test_derived_fields(self) -> None:
        """derived_fields() returns only fields with a derived spec, in order."""
        schema = FormSchema(
            name="f",
            fields=[
                Field(id="a"),
                Field(id="c", derived=DerivedSpec(parents=["a"], formula="a")),
                Field(id="b", derived=DerivedSpec(parents=["a"], formula="a")),
            ],
        )
        assert [f.id for f in schema.derived_fields()] == ["c", "b"]


# ============================================================================
# Structural checks
# ============================================================================


class TestIsValidOptions:
    """Tests for is_valid_options()."""

    def test_choice_with_options(self) -> None:
        """Choice field with unique options is valid."""
        assert is_valid_options(Field(id="a", type="radio", options=["Yes", "No"]))

    def test_choice_without_options(self) -> None:
        """Choice field with no options is invalid."""
        assert not is_valid_options(Field(id="a", type="select"))
        assert not is_valid_options(Field(id="a", type="checkbox", options=[]))

    def test_choice_with_duplicate_options(self) -> None:
        """Options must be unique within a field."""
        assert not is_valid_options(Field(id="a", type="select", options=["A", "A"]))

    def test_choice_with_blank_option(self) -> None:
        """Blank options are rejected."""
        assert not is_valid_options(Field(id="a", type="radio", options=["A", " "]))

    def test_non_choice_without_options(self) -> None:
        """Text field without options is valid."""
        assert is_valid_options(Field(id="a", type="text"))

    def test_non_choice_with_options(self) -> None:
        """Options on a non-choice field are invalid."""
        assert not is_valid_options(Field(id="a", type="number", options=["1"]))


class TestCheckSchema:
    """Tests for check_schema() and is_structurally_sound()."""

    def _broken_schema(self) -> FormSchema:
        return FormSchema(
            name="broken",
            fields=[
                Field(id="a", type="text"),
                Field(id="a", type="number"),
                Field(id="choice", type="select", options=[]),
                Field(
                    id="self",
                    derived=DerivedSpec(parents=["self"], formula="self"),
                ),
                Field(
                    id="dangling",
                    derived=DerivedSpec(parents=["ghost"], formula="ghost"),
                ),
                Field(id="bounds", validation=ValidationSpec(min_length=5, max_length=2)),
                Field(id="blank", derived=DerivedSpec(parents=["a"], formula="  ")),
            ],
        )

    def test_valid_schema(self) -> None:
        """A well-formed schema passes with no violations."""
        schema = FormSchema(
            name="ok",
            fields=[
                Field(id="first"),
                Field(id="color", type="radio", options=["Red", "Blue"]),
                Field(id="upper", derived=DerivedSpec(parents=["first"], formula="upper(first)")),
            ],
        )
        result = check_schema(schema)

        assert result.valid is True
        assert result.violations == []
        assert result.format_report() == "Schema valid"

    def test_collects_every_violation(self) -> None:
        """All problems are reported at once, one code per problem."""
        result = check_schema(self._broken_schema())
        codes = {(v.field_id, v.code) for v in result.violations}

        assert result.valid is False
        assert ("a", "duplicate_id") in codes
        assert ("choice", "missing_options") in codes
        assert ("self", "self_parent") in codes
        assert ("dangling", "missing_parent") in codes
        assert ("bounds", "length_bounds") in codes
        assert ("blank", "empty_formula") in codes
        assert result.error_count == 6

    def test_format_report_lists_all(self) -> None:
        """The report mentions every offending field."""
        report = check_schema(self._broken_schema()).format_report()

        assert report.startswith("Schema has 6 problem(s):")
        for field_id in ("choice", "self", "dangling", "bounds", "blank"):
            assert field_id in report

    def test_for_field(self) -> None:
        """for_field() filters violations by field id."""
        result = check_schema(self._broken_schema())
        assert [v.code for v in result.for_field("dangling")] == ["missing_parent"]

    def test_is_structurally_sound_true(self) -> None:
        """Sound schema returns True."""
        assert is_structurally_sound(FormSchema(name="ok", fields=[Field(id="a")])) is True

    def test_is_structurally_sound_raises_with_all_violations(self) -> None:
        """Unsound schema raises SchemaError carrying the full result."""
        with pytest.raises(SchemaError) as exc_info:
            is_structurally_sound(self._broken_schema())

        assert isinstance(exc_info.value.result, SchemaCheckResult)
        assert len(exc_info.value.violations) == 6
        assert "dangling" in str(exc_info.value)
