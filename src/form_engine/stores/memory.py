"""In-memory store, for tests and embedding without persistence."""

from collections.abc import Sequence

from form_engine.fields.models import FormSchema, Submission


class InMemoryStore:
    """``SchemaStore`` and ``SubmissionStore`` kept in process memory.

    Loads and saves deep-copy, so callers never share objects with the store.
    """

    def __init__(
        self,
        schemas: Sequence[FormSchema] | None = None,
        submissions: Sequence[Submission] | None = None,
    ):
        self._schemas = [s.model_copy(deep=True) for s in schemas or []]
        self._submissions = [s.model_copy(deep=True) for s in submissions or []]

    def load_schemas(self) -> list[FormSchema]:
        return [s.model_copy(deep=True) for s in self._schemas]

    def save_schemas(self, schemas: Sequence[FormSchema]) -> None:
        self._schemas = [s.model_copy(deep=True) for s in schemas]

    def load_submissions(self) -> list[Submission]:
        return [s.model_copy(deep=True) for s in self._submissions]

    def save_submissions(self, submissions: Sequence[Submission]) -> None:
        self._submissions = [s.model_copy(deep=True) for s in submissions]
