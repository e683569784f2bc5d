"""Sandboxed formula evaluation for derived fields.

Formulas are Python-like expressions evaluated with ``simpleeval``.  The
expression sees only the names it is given (the parent values of the field)
and a fixed set of helper functions.  No builtins, no imports, no access to
engine state.

Bindings for a derived field (see ``bind_parents``):

- each parent id that is a valid identifier, bound to its value
- ``parents``: list of parent values in declared order
- ``values``: mapping of parent id to value, for ids that are not
  identifiers (e.g. generated UUIDs): ``values["3f2c-..."]``

Usage:
    from form_engine.evaluation.formula import SandboxedEvaluator, bind_parents

    evaluator = SandboxedEvaluator()
    bindings = bind_parents(["first", "last"], {"first": "Ada", "last": "Lovelace"})
    evaluator.evaluate("first + ' ' + last", bindings)
    # 'Ada Lovelace'
"""

import copy
import keyword
import logging
import math
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime
from typing import Any, Protocol

from simpleeval import EvalWithCompoundTypes, InvalidExpression

from form_engine.errors import FormulaError

logger = logging.getLogger(__name__)

SCALAR_TYPES = (str, int, float, bool)


class FormulaEvaluator(Protocol):
    """Host-provided evaluator for derived-field formulas.

    Implementations must sandbox evaluation: only the given bindings are
    visible, and evaluation has no side effects on engine state.
    """

    def evaluate(self, formula: str, bindings: Mapping[str, Any]) -> Any:
        """Evaluate *formula* with *bindings* as its only free names.

        Returns:
            A scalar (``str``, ``int``, ``float`` or ``bool``).

        Raises:
            FormulaError: On any error inside the expression.
        """
        ...


def is_scalar(value: Any) -> bool:
    """True for values a derived field may hold.

    NaN and infinities are refused: they never compare equal to themselves
    and cannot be persisted as JSON.
    """
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, SCALAR_TYPES)


def bind_parents(parent_ids: Sequence[str], values: Mapping[str, Any]) -> dict[str, Any]:
    """Build the name bindings a formula sees for the given parents.

    Args:
        parent_ids: Declared parent ids, in order.
        values: Current form values.

    Returns:
        Dict of names for the evaluator.  Parent ids shadow the ``parents``
        and ``values`` helpers if they share a name.  Values are deep copies,
        so a formula calling e.g. ``tags.append(...)`` cannot change the
        form's values.
    """
    parent_values = {pid: copy.deepcopy(values.get(pid)) for pid in parent_ids}
    bindings: dict[str, Any] = {
        "parents": [parent_values[pid] for pid in parent_ids],
        "values": parent_values,
    }
    for pid in parent_ids:
        if pid.isidentifier() and not keyword.iskeyword(pid):
            bindings[pid] = parent_values[pid]
    return bindings


# ------------------------------------------------------------------
# Helper functions exposed to formulas
# ------------------------------------------------------------------


def parse_date(value: Any) -> date:
    """Parse an ISO date (``YYYY-MM-DD``, optionally with a time part)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value) >= 10:
        return date.fromisoformat(value[:10])
    raise ValueError(f"Not a date: {value!r}")


def _years_between(start: Any, end: Any) -> int:
    first = parse_date(start)
    last = parse_date(end)
    years = last.year - first.year
    if (last.month, last.day) < (first.month, first.day):
        years -= 1
    return years


def _concat(*parts: Any) -> str:
    return "".join("" if p is None else str(p) for p in parts)


class SandboxedEvaluator:
    """``FormulaEvaluator`` built on ``simpleeval``.

    Args:
        today: Callable returning the current date.  Defaults to
            ``date.today``; pass a fixed clock to make ``today()`` and
            ``current_year()`` deterministic.

    Example:
        >>> evaluator = SandboxedEvaluator(today=lambda: date(2025, 6, 1))
        >>> evaluator.evaluate("current_year() - year(dob)", {"dob": "2000-01-01"})
        25
    """

    def __init__(self, today: Callable[[], date] | None = None):
        self._today = today or date.today

    def functions(self) -> dict[str, Callable[..., Any]]:
        """The helper functions visible to every formula."""
        return {
            "str": str,
            "int": int,
            "float": float,
            "len": len,
            "abs": abs,
            "round": round,
            "min": min,
            "max": max,
            "upper": lambda s: str(s).upper(),
            "lower": lambda s: str(s).lower(),
            "strip": lambda s: str(s).strip(),
            "concat": _concat,
            "today": lambda: self._today().isoformat(),
            "current_year": lambda: self._today().year,
            "parse_date": lambda v: parse_date(v).isoformat(),
            "year": lambda v: parse_date(v).year,
            "month": lambda v: parse_date(v).month,
            "day": lambda v: parse_date(v).day,
            "years_between": lambda start, end=None: _years_between(
                start, self._today() if end is None else end
            ),
        }

    def evaluate(self, formula: str, bindings: Mapping[str, Any]) -> Any:
        """Evaluate *formula* in a fresh sandbox.

        Raises:
            FormulaError: If the formula is empty, invalid, fails at runtime,
                or produces a non-scalar value.
        """
        if not formula or not formula.strip():
            raise FormulaError("Formula is empty", formula=formula)

        sandbox = EvalWithCompoundTypes(
            names=copy.deepcopy(dict(bindings)), functions=self.functions()
        )

        try:
            result = sandbox.eval(formula.strip())
        except InvalidExpression as e:
            raise FormulaError(f"Invalid formula: {e}", formula=formula) from e
        except Exception as e:
            raise FormulaError(f"{type(e).__name__}: {e}", formula=formula) from e

        if isinstance(result, float) and not is_scalar(result):
            raise FormulaError(f"Formula returned {result!r}, expected a finite number", formula=formula)
        if not is_scalar(result):
            raise FormulaError(
                f"Formula returned {type(result).__name__}, expected text, number or boolean",
                formula=formula,
            )

        logger.debug("Evaluated %r -> %r", formula, result)
        return result
