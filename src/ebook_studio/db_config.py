"""MongoDB connection helpers for project storage."""

from __future__ import annotations

import logging
import os
import time

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ServerSelectionTimeoutError

from ebook_studio.db_models import (
    API_CONFIGS_COLLECTION,
    CHAPTER_INSTRUCTIONS_COLLECTION,
    CHAPTERS_COLLECTION,
    EXPORTS_COLLECTION,
    MOCKUPS_COLLECTION,
    PROJECTS_COLLECTION,
    TRANSLATIONS_COLLECTION,
)

logger = logging.getLogger(__name__)

DEFAULT_MONGO_URL = "mongodb://localhost:27017"
DEFAULT_DB_NAME = "ebook_studio"

_mongo_client: MongoClient | None = None


def _mongo_url() -> str:
    return os.getenv("MONGODB_URI") or os.getenv("MONGO_URL", DEFAULT_MONGO_URL)


def _mongo_db_name() -> str:
    return os.getenv("MONGO_DB_NAME", DEFAULT_DB_NAME)


def _use_mock() -> bool:
    return os.getenv("MONGO_USE_MOCK", "false").lower() in {"1", "true", "yes"}


def build_mock_client() -> MongoClient:
    """Return an in-memory MongoDB emulation."""

    import mongomock

    return mongomock.MongoClient()


def _initialise_mongo_client() -> MongoClient:
    global _mongo_client

    if _mongo_client is not None:
        return _mongo_client

    if _use_mock():
        logger.info("Using in-memory MongoDB emulation")
        _mongo_client = build_mock_client()
        return _mongo_client

    mongo_url = _mongo_url()
    is_atlas = "mongodb.net" in mongo_url
    client_options = {
        "appname": "ebook_studio",
        "serverSelectionTimeoutMS": 10000,
        "connectTimeoutMS": 10000,
    }
    if is_atlas:
        client_options.update({"retryWrites": True, "w": "majority", "retryReads": True})

    max_retries = 3
    for attempt in range(1, max_retries + 1):
        client = MongoClient(mongo_url, **client_options)
        try:
            client.admin.command("ping")
        except ServerSelectionTimeoutError as exc:
            client.close()
            if attempt == max_retries:
                raise RuntimeError(
                    f"Failed to connect to MongoDB after {max_retries} attempts: {exc}"
                ) from exc
            # Exponential backoff: 1s, 2s
            delay = 2 ** (attempt - 1)
            logger.warning("MongoDB not reachable (attempt %d/%d), retrying in %ds", attempt, max_retries, delay)
            time.sleep(delay)
            continue

        _mongo_client = client
        return _mongo_client

    raise RuntimeError("Failed to connect to MongoDB")


def get_mongo_client() -> MongoClient:
    return _initialise_mongo_client()


def get_mongo_database() -> Database:
    return get_mongo_client()[_mongo_db_name()]


def get_mongo_collection(name: str) -> Collection:
    return get_mongo_database()[name]


def ensure_indexes(db: Database) -> None:
    """Create the indexes the composite reads rely on."""

    db[PROJECTS_COLLECTION].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    db[CHAPTERS_COLLECTION].create_index(
        [("project_id", ASCENDING), ("language", ASCENDING), ("chapter_number", ASCENDING)]
    )
    db[CHAPTER_INSTRUCTIONS_COLLECTION].create_index(
        [("project_id", ASCENDING), ("chapter_number", ASCENDING)]
    )
    db[TRANSLATIONS_COLLECTION].create_index([("project_id", ASCENDING), ("language", ASCENDING)])
    db[MOCKUPS_COLLECTION].create_index("project_id")
    db[EXPORTS_COLLECTION].create_index([("project_id", ASCENDING), ("language", ASCENDING)])
    db[API_CONFIGS_COLLECTION].create_index([("user_id", ASCENDING), ("type", ASCENDING)])


def create_tables() -> None:
    """Ensure Mongo indexes exist, logging instead of failing when Mongo is down."""

    try:
        ensure_indexes(get_mongo_database())
    except Exception as exc:
        logger.error(
            "Failed to create database indexes: %s. "
            "Set MONGO_USE_MOCK=true to run against an in-memory database.",
            exc,
        )


def close_mongo_client() -> None:
    global _mongo_client
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None
