"""Derived value evaluation: sandboxed formulas and dependency-ordered recompute.

Usage:
    >>> from form_engine.evaluation import recompute, SandboxedEvaluator
"""

from form_engine.evaluation.formula import (
    FormulaEvaluator,
    SandboxedEvaluator,
    bind_parents,
    is_scalar,
    parse_date,
)
from form_engine.evaluation.recompute import recompute, same_value

__all__ = [
    "FormulaEvaluator",
    "SandboxedEvaluator",
    "bind_parents",
    "is_scalar",
    "parse_date",
    "recompute",
    "same_value",
]
