"""Recompute coordinator: the reactive driver behind a running form.

Every edit is an explicit message: ``set_value(field_id, value)`` stores the
raw edit, recomputes the derived fields downstream of it, re-validates what
changed, and returns a new ``FormSnapshot``.  Snapshots are never modified
in place, so a caller can keep, compare, or discard them freely.

Usage:
    from form_engine.coordinator import RecomputeCoordinator

    coordinator = RecomputeCoordinator(schema)
    snapshot = coordinator.set_value("first", "Ada")
    snapshot = coordinator.set_value("last", "Lovelace")
    snapshot.values["full_name"]
    # 'Ada Lovelace'

    result = coordinator.submit(store=store)
    if not result.success:
        for field_id, error in result.errors.items():
            print(field_id, error.message)
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field as PydanticField

from form_engine.errors import CycleError, FormulaError
from form_engine.evaluation.formula import FormulaEvaluator, SandboxedEvaluator
from form_engine.evaluation.recompute import recompute, same_value
from form_engine.fields.models import FormSchema, Submission
from form_engine.fields.structure import is_structurally_sound
from form_engine.graph.dependencies import build_graph
from form_engine.validation.rules import (
    ValidationError,
    is_empty,
    validate,
    validate_all,
)

if TYPE_CHECKING:
    from form_engine.stores.base import SubmissionStore

logger = logging.getLogger(__name__)


class CoordinatorState(str, Enum):
    """States of the recompute state machine."""

    IDLE = "idle"
    RECOMPUTING = "recomputing"


@dataclass(frozen=True)
class FormSnapshot:
    """Values and errors of a running form after an edit.

    Attributes:
        values: Field id -> current value.  Pending derived fields are absent.
        errors: Field id -> validation error, for touched fields only.
        formula_errors: Derived field id -> formula error.
        cycle_fields: Derived fields on a dependency cycle; never computed.
    """

    values: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, ValidationError] = field(default_factory=dict)
    formula_errors: dict[str, FormulaError] = field(default_factory=dict)
    cycle_fields: tuple[str, ...] = ()


class SubmitResult(BaseModel):
    """Result of submitting a form.

    Attributes:
        success: True if every field passed validation.
        errors: Field id -> validation error, for every failing field.
        submission: The stored submission, when a store was given.
    """

    success: bool = False
    errors: dict[str, ValidationError] = PydanticField(default_factory=dict)
    submission: Submission | None = None


class RecomputeCoordinator:
    """Drives recomputation and validation for one form schema.

    The dependency graph is built once, here.  A cyclic schema is still
    usable: the fields on (or downstream of) the cycle are reported in
    ``FormSnapshot.cycle_fields``/left uncomputed, the rest work normally.

    Args:
        schema: Form schema to run.
        evaluator: Formula evaluator.  Defaults to ``SandboxedEvaluator()``.
        values: Starting values.  Defaults to the fields' default values.

    Raises:
        SchemaError: If the schema is structurally unsound (duplicate ids,
            missing parents, bad options, ...).  Cycles are not an error.
    """

    def __init__(
        self,
        schema: FormSchema,
        evaluator: FormulaEvaluator | None = None,
        values: Mapping[str, Any] | None = None,
    ):
        is_structurally_sound(schema)

        self.schema = schema
        self.evaluator = evaluator or SandboxedEvaluator()
        self.state = CoordinatorState.IDLE

        try:
            self.graph = build_graph(schema)
            self.cycle_fields: tuple[str, ...] = ()
        except CycleError as e:
            self.graph = e.graph
            self.cycle_fields = tuple(e.field_ids)

        self._field_ids = set(schema.field_ids())
        self.snapshot = self.initial_snapshot(values)

    def initial_snapshot(self, values: Mapping[str, Any] | None = None) -> FormSnapshot:
        """Snapshot of a freshly opened form, with every derived field computed.

        Args:
            values: Starting values.  When omitted, non-empty default values
                of input (non-derived) fields are used.

        Returns:
            Snapshot with no validation errors: nothing has been touched yet.
        """
        if values is None:
            values = {
                f.id: f.default_value
                for f in self.schema.fields
                if f.derived is None and not is_empty(f.default_value)
            }
        computed, formula_errors = recompute(self.schema, self.graph, values, self.evaluator)
        return FormSnapshot(
            values=computed,
            formula_errors=formula_errors,
            cycle_fields=self.cycle_fields,
        )

    def set_value(
        self,
        field_id: str,
        value: Any,
        snapshot: FormSnapshot | None = None,
    ) -> FormSnapshot:
        """Apply an edit and return the resulting snapshot.

        Args:
            field_id: Edited field.
            value: New raw value.  ``None`` clears the field.
            snapshot: Snapshot to edit.  Defaults to the latest one.

        Returns:
            New ``FormSnapshot``.  The input snapshot is left untouched and
            the result becomes ``self.snapshot``.

        Raises:
            KeyError: If *field_id* is not a field of the schema.
            RuntimeError: If called while another edit is being recomputed.
        """
        if field_id not in self._field_ids:
            raise KeyError(f"Field '{field_id}' not found in form '{self.schema.name}'")
        if self.state is CoordinatorState.RECOMPUTING:
            raise RuntimeError("set_value() called during recomputation; edits must be serialized")

        base = snapshot if snapshot is not None else self.snapshot
        self.state = CoordinatorState.RECOMPUTING
        try:
            new_snapshot = self._apply(base, field_id, value)
        finally:
            self.state = CoordinatorState.IDLE

        self.snapshot = new_snapshot
        return new_snapshot

    def clear_value(self, field_id: str, snapshot: FormSnapshot | None = None) -> FormSnapshot:
        """Clear a field's value.  Derived fields reading it become pending."""
        return self.set_value(field_id, None, snapshot)

    def _apply(self, base: FormSnapshot, field_id: str, value: Any) -> FormSnapshot:
        edited = dict(base.values)
        if value is None:
            edited.pop(field_id, None)
        else:
            edited[field_id] = value

        affected = self.graph.downstream(field_id)
        values, new_formula_errors = recompute(
            self.schema, self.graph, edited, self.evaluator, targets=affected
        )

        formula_errors = {k: v for k, v in base.formula_errors.items() if k not in affected}
        formula_errors.update(new_formula_errors)

        touched = [field_id]
        for derived_id in affected:
            changed = not same_value(base.values.get(derived_id), values.get(derived_id))
            if changed or derived_id in new_formula_errors:
                touched.append(derived_id)

        errors = dict(base.errors)
        for touched_id in touched:
            error = validate(self.schema.get_field(touched_id), values.get(touched_id))
            if error is None:
                errors.pop(touched_id, None)
            else:
                errors[touched_id] = error

        logger.debug(
            "Edit %s: recomputed %s, revalidated %s", field_id, affected, touched
        )
        return FormSnapshot(
            values=values,
            errors=errors,
            formula_errors=formula_errors,
            cycle_fields=base.cycle_fields,
        )

    def validate_all(self, snapshot: FormSnapshot | None = None) -> dict[str, ValidationError]:
        """Validate every field of the form, touched or not."""
        current = snapshot if snapshot is not None else self.snapshot
        return validate_all(self.schema, current.values)

    def submit(
        self,
        snapshot: FormSnapshot | None = None,
        store: "SubmissionStore | None" = None,
    ) -> SubmitResult:
        """Validate every field and, if all pass, record a submission.

        Args:
            snapshot: Snapshot to submit.  Defaults to the latest one.
            store: Optional submission store; the accepted values are
                appended to it.

        Returns:
            ``SubmitResult`` with ``success`` and every validation error.
            Validation failures are returned, never raised.
        """
        current = snapshot if snapshot is not None else self.snapshot
        errors = validate_all(self.schema, current.values)
        if errors:
            logger.info("Submit of %s rejected: %d invalid field(s)", self.schema.name, len(errors))
            return SubmitResult(success=False, errors=errors)

        submission = Submission(
            form_name=self.schema.name,
            submitted_at=datetime.now(timezone.utc).isoformat(),
            values=dict(current.values),
        )
        if store is not None:
            submissions = store.load_submissions()
            submissions.append(submission)
            store.save_submissions(submissions)
            logger.info("Stored submission for %s", self.schema.name)

        return SubmitResult(success=True, submission=submission)

    def progress(self, snapshot: FormSnapshot | None = None) -> float:
        """Percentage (0-100) of fields holding a non-empty value."""
        if not self.schema.fields:
            return 0.0
        current = snapshot if snapshot is not None else self.snapshot
        filled = sum(1 for f in self.schema.fields if not is_empty(current.values.get(f.id)))
        return filled / len(self.schema.fields) * 100
