"""form-engine: derived-field computation and validation for form builders.

Builds a dependency graph between derived fields and their parents,
recomputes derived values in dependency order with a sandboxed formula
evaluator, refuses dependency cycles, and validates field values against
ordered declarative rules.

Usage:
    from form_engine import FormSchema, Field, DerivedSpec
    from form_engine import RecomputeCoordinator, build_graph, recompute
    from form_engine import validate, validate_all, check_schema
    from form_engine import FormBuilder, JsonFileStore
"""

__version__ = "0.1.0"

# Field model
from form_engine.fields.models import (
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

# Errors
from form_engine.errors import (
    CycleError,
    FormEngineError,
    FormulaError,
    SchemaError,
    StoreError,
)

# Validation
from form_engine.validation.rules import (
    ValidationError,
    ValidationRule,
    validate,
    validate_all,
)

# Graph and evaluation
from form_engine.graph.dependencies import DependencyGraph, build_graph
from form_engine.evaluation.formula import FormulaEvaluator, SandboxedEvaluator
from form_engine.evaluation.recompute import recompute

# Coordinator
from form_engine.coordinator import (
    CoordinatorState,
    FormSnapshot,
    RecomputeCoordinator,
    SubmitResult,
)

# Builder, stores, config
from form_engine.builder import FormBuilder
from form_engine.stores import InMemoryStore, JsonFileStore, SchemaStore, SubmissionStore
from form_engine.config import EngineConfig, load_config

__all__ = [
    # Field model
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
    # Errors
    "CycleError",
    "FormEngineError",
    "FormulaError",
    "SchemaError",
    "StoreError",
    # Validation
    "ValidationError",
    "ValidationRule",
    "validate",
    "validate_all",
    # Graph and evaluation
    "DependencyGraph",
    "build_graph",
    "FormulaEvaluator",
    "SandboxedEvaluator",
    "recompute",
    # Coordinator
    "CoordinatorState",
    "FormSnapshot",
    "RecomputeCoordinator",
    "SubmitResult",
    # Builder, stores, config
    "FormBuilder",
    "InMemoryStore",
    "JsonFileStore",
    "SchemaStore",
    "SubmissionStore",
    "EngineConfig",
    "load_config",
]
