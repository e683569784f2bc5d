"""CLI for inspecting and running saved forms.

Usage:
    form-engine forms
    form-engine check Signup
    form-engine preview Signup --set first=Ada --set last=Lovelace
    form-engine preview Profile --set dob=2000-01-01 --today 2025-06-01
    form-engine submit Signup --set email=ada@example.com

Commands:
    forms    - List saved forms
    check    - Check a saved form's structure and dependency graph
    preview  - Run a saved form against values and show the result
    submit   - Validate every field and store the submission
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from form_engine.config.loader import load_config
from form_engine.config.models import EngineConfig
from form_engine.coordinator import FormSnapshot, RecomputeCoordinator
from form_engine.errors import CycleError, SchemaError, StoreError
from form_engine.evaluation.formula import SandboxedEvaluator
from form_engine.fields.models import FieldType, FormSchema
from form_engine.fields.structure import check_schema
from form_engine.graph.dependencies import build_graph
from form_engine.stores.json_file import JsonFileStore

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _setup(args: argparse.Namespace) -> tuple[EngineConfig, JsonFileStore]:
    """Load config, configure logging, and open the store."""
    config_path = Path(args.config) if getattr(args, "config", None) else None
    config = load_config(config_path, env_prefix=getattr(args, "env_prefix", ""))

    level = logging.DEBUG if getattr(args, "verbose", False) else config.log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )

    forms_path = getattr(args, "forms", None) or config.forms_path
    return config, JsonFileStore(forms_path, config.submissions_path)


def _find_form(store: JsonFileStore, name: str) -> FormSchema:
    for schema in store.load_schemas():
        if schema.name == name:
            return schema
    raise KeyError(f"Form '{name}' not found")


def _coerce_value(field_type: FieldType, raw: str) -> Any:
    """Convert a command-line string to a value for a field of *field_type*.

    Numbers become int/float, checkbox values split on commas (or parse as
    a JSON array), everything else stays a string.  An empty string clears
    the field.
    """
    if raw == "":
        return None
    if field_type is FieldType.NUMBER:
        try:
            return int(raw)
        except ValueError:
            return float(raw)
    if field_type is FieldType.CHECKBOX:
        if raw.startswith("["):
            return json.loads(raw)
        return [part.strip() for part in raw.split(",") if part.strip()]
    return raw


def _parse_assignments(schema: FormSchema, assignments: list[str]) -> list[tuple[str, Any]]:
    """Parse ``ID=VALUE`` pairs into typed (field id, value) edits.

    Raises:
        ValueError: If a pair is malformed or a value cannot be converted.
        KeyError: If an id is not a field of *schema*.
    """
    edits: list[tuple[str, Any]] = []
    for assignment in assignments:
        if "=" not in assignment:
            raise ValueError(f"Expected ID=VALUE, got: {assignment}")
        field_id, raw = assignment.split("=", 1)
        field = schema.get_field(field_id.strip())
        edits.append((field.id, _coerce_value(field.type, raw)))
    return edits


def _run(args: argparse.Namespace, schema: FormSchema) -> RecomputeCoordinator:
    today = date.fromisoformat(args.today) if args.today else None
    evaluator = SandboxedEvaluator(today=(lambda: today) if today else None)
    coordinator = RecomputeCoordinator(schema, evaluator=evaluator)
    for field_id, value in _parse_assignments(schema, args.set or []):
        coordinator.set_value(field_id, value)
    return coordinator


def _print_schema_error(name: str, error: SchemaError) -> None:
    console.print(f"[bold red]x[/bold red] Form [cyan]{escape(name)}[/cyan] is structurally unsound")
    console.print(str(error), markup=False)


def _print_snapshot(schema: FormSchema, snapshot: FormSnapshot, errors: dict) -> None:
    table = Table(title=f"Form: {schema.name}", show_header=True, header_style="bold")
    table.add_column("Field")
    table.add_column("Type", style="dim")
    table.add_column("Value")
    table.add_column("Status")

    for field in schema.fields:
        value = snapshot.values.get(field.id)
        shown = "" if value is None else json.dumps(value, ensure_ascii=False)
        if field.id in snapshot.cycle_fields:
            status = "[red]cycle[/red]"
        elif field.id in snapshot.formula_errors:
            status = f"[red]{escape(snapshot.formula_errors[field.id].message)}[/red]"
        elif field.id in errors:
            status = f"[yellow]{errors[field.id].message}[/yellow]"
        elif field.derived is not None and value is None:
            status = "[dim]pending[/dim]"
        else:
            status = "[green]ok[/green]"
        label = field.label or field.id
        if field.derived is not None:
            label += " [dim](derived)[/dim]"
        table.add_row(label, field.type.value, shown, status)

    console.print(table)


# ============================================================================
# Commands
# ============================================================================


def cmd_forms(args: argparse.Namespace) -> int:
    """List saved forms.

    Returns:
        0 on success, 1 if the store cannot be read.
    """
    try:
        _, store = _setup(args)
        schemas = store.load_schemas()
    except (FileNotFoundError, ValueError, StoreError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    if not schemas:
        console.print("[yellow]No saved forms.[/yellow]")
        return 0

    table = Table(title="Saved Forms", show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Fields", justify="right")
    table.add_column("Derived", justify="right")
    table.add_column("Created", style="dim")
    table.add_column("Updated", style="dim")

    for schema in schemas:
        table.add_row(
            f"[bold cyan]{schema.name}[/bold cyan]",
            str(len(schema.fields)),
            str(len(schema.derived_fields())),
            schema.created_at,
            schema.updated_at or "",
        )

    console.print(table)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Check a saved form's structure and dependency graph.

    Returns:
        0 if the form is sound and acyclic, 1 otherwise.
    """
    try:
        _, store = _setup(args)
        schema = _find_form(store, args.name)
    except (FileNotFoundError, ValueError, KeyError, StoreError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    result = check_schema(schema)
    ok = result.valid
    if result.valid:
        console.print("[bold green]v[/bold green] Structure is valid")
    else:
        console.print("[bold red]x[/bold red] Structure has problems")
        console.print(result.format_report(), markup=False)

    try:
        graph = build_graph(schema)
        if graph.order:
            console.print(f"  Derived order: [cyan]{' -> '.join(graph.order)}[/cyan]")
    except CycleError as e:
        ok = False
        console.print(
            f"[bold red]x[/bold red] Dependency cycle: "
            f"[red]{', '.join(e.field_ids)}[/red]"
        )

    return 0 if ok else 1


def cmd_preview(args: argparse.Namespace) -> int:
    """Run a saved form against values and show values and errors.

    Returns:
        0 if no touched field has an error, 1 otherwise.
    """
    try:
        _, store = _setup(args)
        schema = _find_form(store, args.name)
        coordinator = _run(args, schema)
    except SchemaError as e:
        _print_schema_error(args.name, e)
        return 1
    except (FileNotFoundError, ValueError, KeyError, StoreError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    snapshot = coordinator.snapshot
    _print_snapshot(schema, snapshot, snapshot.errors)
    console.print(f"Progress: {coordinator.progress():.0f}%")
    return 1 if snapshot.errors or snapshot.formula_errors else 0


def cmd_submit(args: argparse.Namespace) -> int:
    """Validate every field of a saved form and store the submission.

    Returns:
        0 if the submission was accepted, 1 otherwise.
    """
    try:
        _, store = _setup(args)
        schema = _find_form(store, args.name)
        coordinator = _run(args, schema)
        result = coordinator.submit(store=store)
    except SchemaError as e:
        _print_schema_error(args.name, e)
        return 1
    except (FileNotFoundError, ValueError, KeyError, StoreError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    if not result.success:
        _print_snapshot(schema, coordinator.snapshot, result.errors)
        console.print(f"[bold red]x[/bold red] {len(result.errors)} field(s) invalid")
        return 1

    console.print("[bold green]v[/bold green] Submission stored")
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def _add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("name", help="Saved form name")
    parser.add_argument(
        "--set",
        action="append",
        metavar="ID=VALUE",
        help="Field value (repeatable); an empty VALUE clears the field",
    )
    parser.add_argument(
        "--today",
        help="Date used by today()/current_year() in formulas (YYYY-MM-DD)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="form-engine",
        description="Inspect and run saved forms with derived fields",
    )
    parser.add_argument("--config", help="Path to form-engine.toml")
    parser.add_argument("--forms", help="Path to the saved forms JSON file")
    parser.add_argument(
        "--env-prefix",
        default="",
        help="Prefix for environment variable lookup (e.g., APP_ reads APP_FORM_ENGINE_CONFIG)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_forms = subparsers.add_parser("forms", help="List saved forms")
    p_forms.set_defaults(func=cmd_forms)

    p_check = subparsers.add_parser("check", help="Check a form's structure and dependencies")
    p_check.add_argument("name", help="Saved form name")
    p_check.set_defaults(func=cmd_check)

    p_preview = subparsers.add_parser("preview", help="Run a form against values")
    _add_run_arguments(p_preview)
    p_preview.set_defaults(func=cmd_preview)

    p_submit = subparsers.add_parser("submit", help="Validate and store a submission")
    _add_run_arguments(p_submit)
    p_submit.set_defaults(func=cmd_submit)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
