"""
Document storage for farms, crops, community posts and users.
"""

from .connection import check_database, create_database_engine
from .document_store import (
    DocumentIdentityStore,
    DocumentStore,
    InMemoryDocumentStore,
    new_object_id,
)
from .sql_store import SQLDocumentStore


def build_document_store(settings) -> DocumentStore:
    """Document store selected by ``DOCUMENT_STORE_BACKEND``."""
    if settings.DOCUMENT_STORE_BACKEND == "memory":
        return InMemoryDocumentStore()
    return SQLDocumentStore.from_settings(settings)


__all__ = [
    "DocumentIdentityStore",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SQLDocumentStore",
    "build_document_store",
    "check_database",
    "create_database_engine",
    "new_object_id",
]
