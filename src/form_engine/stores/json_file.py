"""JSON file store for saved forms and submissions.

Each collection is one JSON array in its own file, in the persisted layout
used by browser form builders: camelCase keys, field order preserved,
absent optional properties written as ``null``.

Usage:
    from form_engine.stores.json_file import JsonFileStore

    store = JsonFileStore("forms.json", "submissions.json")
    schemas = store.load_schemas()
"""

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError as PydanticValidationError

from form_engine.errors import StoreError
from form_engine.fields.models import FormSchema, Submission

logger = logging.getLogger(__name__)


class JsonFileStore:
    """``SchemaStore`` and ``SubmissionStore`` backed by two JSON files.

    Args:
        forms_path: File holding the saved forms array.
        submissions_path: File holding the submissions array.

    A missing file reads as an empty collection; parent directories are
    created on save.
    """

    def __init__(
        self,
        forms_path: str | Path,
        submissions_path: str | Path | None = None,
    ):
        self.forms_path = Path(forms_path)
        if submissions_path is None:
            submissions_path = self.forms_path.with_name("submissions.json")
        self.submissions_path = Path(submissions_path)

    def _read(self, path: Path) -> list[dict[str, Any]]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt JSON in {path}: {e}") from e
        if not isinstance(data, list):
            raise StoreError(f"Expected a JSON array in {path}, got {type(data).__name__}")
        return data

    def _write(self, path: Path, items: Sequence[BaseModel]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = [item.model_dump(mode="json", by_alias=True) for item in items]
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.debug("Wrote %d item(s) to %s", len(payload), path)

    def load_schemas(self) -> list[FormSchema]:
        """Load saved forms.

        Raises:
            StoreError: If the file is not a JSON array of valid forms.
        """
        try:
            return [FormSchema.model_validate(item) for item in self._read(self.forms_path)]
        except PydanticValidationError as e:
            raise StoreError(f"Invalid form in {self.forms_path}: {e}") from e

    def save_schemas(self, schemas: Sequence[FormSchema]) -> None:
        self._write(self.forms_path, schemas)

    def load_submissions(self) -> list[Submission]:
        """Load stored submissions.

        Raises:
            StoreError: If the file is not a JSON array of valid submissions.
        """
        try:
            return [Submission.model_validate(item) for item in self._read(self.submissions_path)]
        except PydanticValidationError as e:
            raise StoreError(f"Invalid submission in {self.submissions_path}: {e}") from e

    def save_submissions(self, submissions: Sequence[Submission]) -> None:
        self._write(self.submissions_path, submissions)
