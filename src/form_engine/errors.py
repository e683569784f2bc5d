"""Exception types raised by the form engine.

Validation failures are not here: they are returned as
``form_engine.validation.ValidationError`` data and never raised.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from form_engine.fields.structure import SchemaCheckResult
    from form_engine.graph.dependencies import DependencyGraph


class FormEngineError(Exception):
    """Base class for form engine errors."""

    pass


class SchemaError(FormEngineError):
    """Raised when a form schema is structurally unsound.

    Carries the full ``SchemaCheckResult`` so every violation can be shown
    at once, not just the first.
    """

    def __init__(self, result: "SchemaCheckResult"):
        self.result = result
        super().__init__(result.format_report())

    @property
    def violations(self) -> list:
        return self.result.violations


class CycleError(FormEngineError):
    """Raised when derived fields depend on each other in a cycle.

    Attributes:
        field_ids: Every field id lying on at least one cycle, in schema order.
        graph: Dependency graph over the derived fields that are neither on
            a cycle nor downstream of one.  These can still be recomputed.
    """

    def __init__(self, field_ids: list[str], graph: "DependencyGraph"):
        self.field_ids = field_ids
        self.graph = graph
        super().__init__(
            f"Dependency cycle between fields: {', '.join(field_ids)}"
        )


class FormulaError(FormEngineError):
    """Raised by a formula evaluator when an expression fails.

    Non-fatal during recomputation: the field resolves to an empty string
    and the error is recorded against it.
    """

    def __init__(
        self,
        message: str,
        field_id: str | None = None,
        formula: str | None = None,
    ):
        self.message = message
        self.field_id = field_id
        self.formula = formula
        super().__init__(message)

    def for_field(self, field_id: str) -> "FormulaError":
        """Return a copy attributed to *field_id*."""
        return FormulaError(self.message, field_id=field_id, formula=self.formula)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FormulaError):
            return NotImplemented
        return (self.message, self.field_id, self.formula) == (
            other.message,
            other.field_id,
            other.formula,
        )

    def __hash__(self) -> int:
        return hash((self.message, self.field_id, self.formula))

    def __repr__(self) -> str:
        return f"FormulaError({self.message!r}, field_id={self.field_id!r})"


class StoreError(FormEngineError):
    """Raised when persisted forms or submissions cannot be read."""

    pass
