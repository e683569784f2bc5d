"""Persistence collaborators for saved forms and submissions.

Provides the ``SchemaStore``/``SubmissionStore`` protocols and two
implementations: ``JsonFileStore`` (files on disk) and ``InMemoryStore``.

Usage:
    from form_engine.stores import JsonFileStore, SchemaStore
"""

from form_engine.stores.base import SchemaStore, SubmissionStore
from form_engine.stores.json_file import JsonFileStore
from form_engine.stores.memory import InMemoryStore

__all__ = [
    "SchemaStore",
    "SubmissionStore",
    "JsonFileStore",
    "InMemoryStore",
]
