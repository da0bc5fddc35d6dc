"""Document collection names and helpers for MongoDB persistence."""

from __future__ import annotations

import uuid
from typing import Any, Dict

PROJECTS_COLLECTION = "projects"
CHAPTERS_COLLECTION = "chapters"
CHAPTER_INSTRUCTIONS_COLLECTION = "chapter_instructions"
TRANSLATIONS_COLLECTION = "translations"
MOCKUPS_COLLECTION = "mockups"
EXPORTS_COLLECTION = "exports"
API_CONFIGS_COLLECTION = "api_configs"

PROJECT_CHILD_COLLECTIONS = (
    CHAPTERS_COLLECTION,
    CHAPTER_INSTRUCTIONS_COLLECTION,
    TRANSLATIONS_COLLECTION,
    MOCKUPS_COLLECTION,
    EXPORTS_COLLECTION,
)

# Artifacts a project produces; regeneration replaces these but keeps instructions.
GENERATED_ARTIFACT_COLLECTIONS = (
    CHAPTERS_COLLECTION,
    TRANSLATIONS_COLLECTION,
    MOCKUPS_COLLECTION,
    EXPORTS_COLLECTION,
)


def new_document_id() -> str:
    """Return a fresh string identifier for a document."""

    return str(uuid.uuid4())


def normalise_id(document: Dict[str, Any]) -> str:
    """Return the string identifier for a Mongo document."""

    return str(document.get("_id") or document.get("id"))


def to_record(document: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a Mongo document into a dict keyed by ``id`` instead of ``_id``."""

    record = dict(document)
    record["id"] = normalise_id(record)
    record.pop("_id", None)
    return record
