"""
Infrastructure layer package for the KrishiVedha API.
Provides the document stores, identity lookups and image storage.
"""

from .database import DocumentIdentityStore, InMemoryDocumentStore, SQLDocumentStore
from .storage.image_storage import InMemoryImageStorage, LocalImageStorage

__all__ = [
    "DocumentIdentityStore",
    "InMemoryDocumentStore",
    "InMemoryImageStorage",
    "LocalImageStorage",
    "SQLDocumentStore",
]
