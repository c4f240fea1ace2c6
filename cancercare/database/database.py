"""
ArangoDB access for the clinical record collections.

Owns the process-wide connection, creates the database, collections and
indexes on first use, and converts python-arango/requests failures into the
two storage errors the rest of the service understands:

- ``DuplicateRecordError``: an insert hit a unique index
- ``StorageUnavailableError``: anything else (unreachable server, bad
  credentials, query failure)
"""

import threading
from contextlib import contextmanager
from typing import Any, Iterator

from arango import ArangoClient
from arango.database import StandardDatabase
from arango.exceptions import ArangoError, CollectionCreateError, DocumentGetError, IndexCreateError
from requests.exceptions import RequestException

from cancercare.config.config import get_settings
from cancercare.config.logging_config import get_logger

logger = get_logger(__name__)

CANCER_TYPES = "cancer_types"
PATIENTS = "patients"
TREATMENT_RECORDS = "treatment_records"
TREATMENT_OUTCOMES = "treatment_outcomes"
SURVIVAL_DATA = "survival_data"
MEDICAL_IMAGES = "medical_images"
AI_PREDICTIONS = "ai_predictions"
STATISTICS = "statistics"

COLLECTIONS = [
    CANCER_TYPES,
    PATIENTS,
    TREATMENT_RECORDS,
    TREATMENT_OUTCOMES,
    SURVIVAL_DATA,
    MEDICAL_IMAGES,
    AI_PREDICTIONS,
    STATISTICS,
]

# (collection, fields, unique)
INDEXES = [
    (PATIENTS, ["patient_code"], True),
    (PATIENTS, ["cancer_type_id"], False),
    (SURVIVAL_DATA, ["patient_id"], True),
    (TREATMENT_RECORDS, ["patient_id"], False),
    (TREATMENT_OUTCOMES, ["patient_id"], False),
    (MEDICAL_IMAGES, ["patient_id"], False),
    (AI_PREDICTIONS, ["patient_id"], False),
    (STATISTICS, ["stat_type"], False),
]

# ArangoDB error numbers
UNIQUE_CONSTRAINT_VIOLATED = 1210
DOCUMENT_KEY_BAD = 1221

_client: ArangoClient | None = None
_db: StandardDatabase | None = None
# Threadpool workers race on the first connection; one of them bootstraps
_connect_lock = threading.Lock()


class StorageUnavailableError(RuntimeError):
    """The clinical database could not serve the request."""


class DuplicateRecordError(ValueError):
    """An insert violated a unique index (patient code, survival per patient)."""


def get_database() -> StandardDatabase:
    """
    Connect on first call and return the shared database handle.

    The target database and its schema are created if missing, so a fresh
    ArangoDB instance is usable without a migration step.

    Raises:
        StorageUnavailableError: If ArangoDB cannot be reached or rejects
            the credentials.
    """
    global _client, _db
    if _db is not None:
        return _db

    with _connect_lock:
        if _db is not None:
            return _db

        settings = get_settings()
        if _client is None:
            _client = ArangoClient(hosts=settings.arango_host)

        credentials = {"username": settings.arango_username, "password": settings.arango_password}
        try:
            sys_db = _client.db("_system", **credentials)
            if not sys_db.has_database(settings.arango_database):
                sys_db.create_database(settings.arango_database)
                logger.info("Created clinical database", database=settings.arango_database)

            db = _client.db(settings.arango_database, **credentials)
            ensure_schema(db)
        except (ArangoError, RequestException) as e:
            logger.error(
                "Cannot connect to ArangoDB",
                host=settings.arango_host,
                database=settings.arango_database,
                error=str(e),
            )
            raise StorageUnavailableError("Database not available") from e

        _db = db
        logger.info("Connected to ArangoDB", host=settings.arango_host, database=settings.arango_database)
        return _db


def ensure_schema(db: StandardDatabase) -> None:
    """Create missing collections and persistent indexes (idempotent)."""
    existing = {c["name"] for c in db.collections()}
    for name in COLLECTIONS:
        if name in existing:
            continue
        try:
            db.create_collection(name)
            logger.info("Created collection", collection=name)
        except CollectionCreateError as e:
            # Another worker may have created it concurrently
            logger.warning("Collection not created", collection=name, error=str(e))

    for name, fields, unique in INDEXES:
        try:
            db.collection(name).add_index({"type": "persistent", "fields": fields, "unique": unique})
        except IndexCreateError as e:
            logger.warning("Index not created", collection=name, fields=fields, error=str(e))


def is_database_available() -> bool:
    """Health check: True when ArangoDB answers a version request."""
    try:
        get_database().version()
    except (StorageUnavailableError, ArangoError, RequestException):
        return False
    return True


def close_connection() -> None:
    """Drop the shared connection; the next call to get_database reconnects."""
    global _client, _db
    with _connect_lock:
        if _client is None:
            return
        _client.close()
        _client, _db = None, None
    logger.info("ArangoDB connection closed")


@contextmanager
def get_db_session() -> Iterator[StandardDatabase]:
    """
    Yield the database and translate driver errors raised inside the block.

    Unique index violations become ``DuplicateRecordError``; every other
    ArangoDB or transport error becomes ``StorageUnavailableError``.
    """
    db = get_database()
    try:
        yield db
    except ArangoError as e:
        if getattr(e, "error_code", None) == UNIQUE_CONSTRAINT_VIOLATED:
            raise DuplicateRecordError(str(e)) from e
        logger.error("ArangoDB request failed", error=str(e))
        raise StorageUnavailableError(str(e)) from e
    except RequestException as e:
        logger.error("ArangoDB unreachable", error=str(e))
        raise StorageUnavailableError("Database not available") from e


# ============================================================================
# Collection helpers
# ============================================================================

def insert_document(collection: str, document: dict[str, Any]) -> dict[str, Any]:
    """Insert ``document`` and return the stored version (with ``_key``)."""
    with get_db_session() as db:
        stored = db.collection(collection).insert(document, return_new=True)["new"]
    logger.debug("Document inserted", collection=collection, key=stored["_key"])
    return stored


def get_document(collection: str, key: str) -> dict[str, Any] | None:
    """Fetch by key; malformed keys are treated like missing ones."""
    with get_db_session() as db:
        try:
            return db.collection(collection).get(key)
        except DocumentGetError as e:
            if e.error_code == DOCUMENT_KEY_BAD:
                return None
            raise


def count_documents(collection: str) -> int:
    with get_db_session() as db:
        return db.collection(collection).count()


def query_documents(aql: str, bind_vars: dict[str, Any] | None = None) -> list[dict[str, Any]]:
    """Run an AQL query and materialize the cursor."""
    with get_db_session() as db:
        return list(db.aql.execute(aql, bind_vars=bind_vars or {}))
