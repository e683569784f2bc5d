"""Recomputation of derived field values.

Walks derived fields in dependency order and evaluates each formula against
the current values of its parents.

Per derived field:

- Any parent absent (``None`` or missing): the field is pending, its value
  is removed, no error.
- Formula fails or returns a non-scalar: the field becomes ``""`` and a
  ``FormulaError`` is recorded against it.  Other fields carry on.
- Formula succeeds: the value is stored only if it differs from the
  current one.

Usage:
    from form_engine.evaluation.recompute import recompute
    from form_engine.graph.dependencies import build_graph

    graph = build_graph(schema)
    values, formula_errors = recompute(schema, graph, values)
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from form_engine.errors import FormulaError
from form_engine.evaluation.formula import (
    FormulaEvaluator,
    SandboxedEvaluator,
    bind_parents,
    is_scalar,
)
from form_engine.fields.models import FormSchema
from form_engine.graph.dependencies import DependencyGraph

logger = logging.getLogger(__name__)


def same_value(old: Any, new: Any) -> bool:
    """Value equality that also requires matching types.

    ``1``, ``1.0`` and ``True`` compare equal in Python but are different
    field values.
    """
    return type(old) is type(new) and old == new


def recompute(
    schema: FormSchema,
    graph: DependencyGraph,
    values: Mapping[str, Any],
    evaluator: FormulaEvaluator | None = None,
    targets: Iterable[str] | None = None,
) -> tuple[dict[str, Any], dict[str, FormulaError]]:
    """Recompute derived values in dependency order.

    Args:
        schema: Form schema providing each derived field's formula.
        graph: Graph from ``build_graph(schema)`` (or ``CycleError.graph``).
            Fields outside the graph are never recomputed.
        values: Current values keyed by field id.  Not modified.
        evaluator: Formula evaluator.  Defaults to ``SandboxedEvaluator()``.
        targets: Restrict recomputation to these derived fields.  They are
            still processed in graph order.  ``None`` means all.

    Returns:
        Tuple of (new values, formula errors keyed by field id).  Running
        ``recompute`` again on the new values yields the same values.
    """
    if evaluator is None:
        evaluator = SandboxedEvaluator()

    wanted = None if targets is None else set(targets)
    new_values = dict(values)
    errors: dict[str, FormulaError] = {}

    for field_id in graph.order:
        if wanted is not None and field_id not in wanted:
            continue

        field = schema.get_field(field_id)
        if field.derived is None:
            continue
        parent_ids = graph.parents[field_id]

        if any(new_values.get(pid) is None for pid in parent_ids):
            if new_values.pop(field_id, None) is not None:
                logger.debug("%s pending: a parent has no value", field_id)
            continue

        bindings = bind_parents(parent_ids, new_values)
        try:
            result = evaluator.evaluate(field.derived.formula, bindings)
            if not is_scalar(result):
                raise FormulaError(
                    f"Formula returned {type(result).__name__}, expected a scalar",
                    formula=field.derived.formula,
                )
        except FormulaError as e:
            logger.warning("Formula for %s failed: %s", field_id, e.message)
            errors[field_id] = e.for_field(field_id)
            result = ""
        except Exception as e:
            # Host evaluators are expected to raise FormulaError; wrap anything else
            logger.warning("Formula for %s raised %s: %s", field_id, type(e).__name__, e)
            errors[field_id] = FormulaError(
                f"{type(e).__name__}: {e}",
                field_id=field_id,
                formula=field.derived.formula,
            )
            result = ""

        if not same_value(new_values.get(field_id), result):
            new_values[field_id] = result

    return new_values, errors
