"""In-progress form editing: add, update, reorder, delete, save, load.

``FormBuilder`` owns the list of fields being edited.  Saving stamps a
``FormSchema`` and writes it to the store; loading replaces the list with a
copy of a saved form.

Usage:
    from form_engine.builder import FormBuilder
    from form_engine.stores import JsonFileStore

    builder = FormBuilder(JsonFileStore("forms.json"))
    email = builder.add_field("text", label="Email", required=True)
    builder.update_field(email.id, "validation", {"email": True})
    builder.save_form("Signup")
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from form_engine.config.models import EngineConfig
from form_engine.fields.models import Field, FieldType, FormSchema
from form_engine.stores.base import SchemaStore

logger = logging.getLogger(__name__)

# Persisted (camelCase) property names accepted by update_field
_PROPERTY_ALIASES = {
    "defaultValue": "default_value",
}
_UPDATABLE = {"type", "label", "required", "default_value", "options", "validation", "derived"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FormBuilder:
    """Editor for the in-progress field list of a form.

    Args:
        store: Where saved forms live.
        config: Defaults for new fields.  Defaults to ``EngineConfig()``.
        fields: Initial in-progress fields.
    """

    def __init__(
        self,
        store: SchemaStore,
        config: EngineConfig | None = None,
        fields: list[Field] | None = None,
    ):
        self.store = store
        self.config = config or EngineConfig()
        self.fields: list[Field] = list(fields or [])

    def _index_of(self, field_id: str) -> int:
        for i, field in enumerate(self.fields):
            if field.id == field_id:
                return i
        raise KeyError(f"Field '{field_id}' not found")

    def get_field(self, field_id: str) -> Field:
        """Return the in-progress field with *field_id*."""
        return self.fields[self._index_of(field_id)]

    def add_field(self, field_type: FieldType | str = FieldType.TEXT, **props: Any) -> Field:
        """Append a new field with a generated id and default properties.

        Choice fields get the configured default options unless *props*
        provides ``options``.

        Args:
            field_type: Type of the new field.
            **props: Property overrides (``label``, ``required``, ``id``, ...).

        Returns:
            The created field.
        """
        field_type = FieldType(field_type)
        data: dict[str, Any] = {
            "id": str(uuid.uuid4()),
            "type": field_type,
            "label": self.config.default_label,
            "required": False,
            "default_value": "",
            "options": list(self.config.default_options) if field_type.is_choice else None,
        }
        data.update(props)
        field = Field.model_validate(data)
        self.fields.append(field)
        logger.debug("Added %s field %s", field.type.value, field.id)
        return field

    def update_field(self, field_id: str, key: str, value: Any) -> Field:
        """Set one property of an in-progress field.

        Args:
            field_id: Field to update.
            key: Property name, snake_case or persisted camelCase.
            value: New value; validated against the property type.

        Raises:
            KeyError: If no field has *field_id*.
            ValueError: If *key* is ``id``, unknown, or *value* is invalid.
        """
        field = self.get_field(field_id)
        attr = _PROPERTY_ALIASES.get(key, key)
        if attr == "id":
            raise ValueError("Field id cannot be changed")
        if attr not in _UPDATABLE:
            raise ValueError(f"Unknown field property: {key}")
        setattr(field, attr, value)
        return field

    def move_field(self, from_index: int, to_index: int) -> None:
        """Move the field at *from_index* to *to_index*.

        A target outside the list is ignored.  Moving by one position swaps
        the two neighbours.

        Raises:
            IndexError: If *from_index* is out of range.
        """
        if not 0 <= to_index < len(self.fields):
            return
        if not 0 <= from_index < len(self.fields):
            raise IndexError(f"No field at position {from_index}")
        moved = self.fields.pop(from_index)
        self.fields.insert(to_index, moved)

    def delete_field(self, field_id: str) -> None:
        """Remove a field by id.  Unknown ids are ignored."""
        self.fields = [f for f in self.fields if f.id != field_id]

    def current_schema(self, name: str = "") -> FormSchema:
        """Unsaved schema of the in-progress fields, e.g. for previewing."""
        return FormSchema(name=name, fields=[f.model_copy(deep=True) for f in self.fields])

    def saved_forms(self) -> list[FormSchema]:
        """Saved forms, in saved order."""
        return self.store.load_schemas()

    def save_form(self, name: str) -> FormSchema:
        """Save the in-progress fields under *name* and clear the list.

        A new name is appended with a creation timestamp.  Saving under an
        existing name replaces that form, keeps its ``created_at`` and sets
        ``updated_at``.

        Raises:
            ValueError: If *name* is blank or there are no fields.
        """
        name = name.strip()
        if not name:
            raise ValueError("Form name is required")
        if not self.fields:
            raise ValueError("Add at least one field before saving")

        schemas = self.store.load_schemas()
        schema = self.current_schema(name)

        for i, existing in enumerate(schemas):
            if existing.name == name:
                schema.created_at = existing.created_at
                schema.updated_at = _now()
                schemas[i] = schema
                logger.info("Updated form %s", name)
                break
        else:
            schema.created_at = _now()
            schemas.append(schema)
            logger.info("Saved form %s", name)

        self.store.save_schemas(schemas)
        self.fields = []
        return schema

    def load_form(self, name: str) -> list[Field]:
        """Replace the in-progress fields with a copy of a saved form's fields.

        Raises:
            KeyError: If no saved form has *name*.
        """
        for schema in self.store.load_schemas():
            if schema.name == name:
                self.fields = [f.model_copy(deep=True) for f in schema.fields]
                return self.fields
        raise KeyError(f"Form '{name}' not found")
