"""Persistence protocols for saved forms and submissions.

The engine never picks a storage medium.  Callers pass a store object that
implements these protocols; ``load`` and ``save`` are the only operations.

Usage:
    from form_engine.stores.base import SchemaStore

    def rename_all(store: SchemaStore, suffix: str) -> None:
        schemas = store.load_schemas()
        for schema in schemas:
            schema.name += suffix
        store.save_schemas(schemas)
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from form_engine.fields.models import FormSchema, Submission


@runtime_checkable
class SchemaStore(Protocol):
    """Store for the collection of saved form schemas."""

    def load_schemas(self) -> list[FormSchema]:
        """Load every saved schema, in saved order.

        Returns:
            List of schemas.  Empty list if nothing was saved yet.  The
            caller owns the returned objects; mutating them does not change
            the store until ``save_schemas`` is called.
        """
        ...

    def save_schemas(self, schemas: Sequence[FormSchema]) -> None:
        """Replace the saved collection with *schemas*."""
        ...


@runtime_checkable
class SubmissionStore(Protocol):
    """Store for accepted form submissions."""

    def load_submissions(self) -> list[Submission]:
        """Load every stored submission, oldest first."""
        ...

    def save_submissions(self, submissions: Sequence[Submission]) -> None:
        """Replace the stored submissions with *submissions*."""
        ...
