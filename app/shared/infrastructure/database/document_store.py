"""
Document store contract and its in-process implementation.

Documents are Mongo-style (``_id`` is a 24-hex-character object id) and
grouped per collection. The persistent implementation lives in
``sql_store``; the in-process one backs tests and throwaway local runs.
"""

import copy
import itertools
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

Document = Dict[str, Any]


def new_object_id() -> str:
    return secrets.token_hex(12)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentStore(Protocol):
    async def initialize(self) -> None: ...

    async def close(self) -> None: ...

    async def health_check(self) -> Dict[str, Any]: ...

    async def insert(self, collection: str, document: Mapping[str, Any]) -> Document: ...

    async def find_by_id(self, collection: str, document_id: str) -> Optional[Document]: ...

    async def find_one(self, collection: str, **criteria: Any) -> Optional[Document]: ...

    async def find(
        self,
        collection: str,
        criteria: Optional[Mapping[str, Any]] = None,
        sort: str = "-createdAt",
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]: ...

    async def count(self, collection: str, criteria: Optional[Mapping[str, Any]] = None) -> int: ...

    async def update(self, collection: str, document_id: str, changes: Mapping[str, Any]) -> Optional[Document]: ...

    async def push(self, collection: str, document_id: str, field: str, item: Any) -> Optional[Document]: ...

    async def delete(self, collection: str, document_id: str) -> bool: ...


class InMemoryDocumentStore:
    """Collections of documents kept in a dict. Returned documents are copies."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._sequence = itertools.count()
        self._order: Dict[str, int] = {}

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "backend": "memory"}

    def _collection(self, name: str) -> Dict[str, Document]:
        return self._collections.setdefault(name, {})

    async def insert(self, collection: str, document: Mapping[str, Any]) -> Document:
        stored = copy.deepcopy(dict(document))
        stored.setdefault("_id", new_object_id())
        now = utcnow_iso()
        stored.setdefault("createdAt", now)
        stored["updatedAt"] = now

        self._collection(collection)[stored["_id"]] = stored
        self._order[stored["_id"]] = next(self._sequence)
        logger.debug("Document inserted", collection=collection, document_id=stored["_id"])
        return copy.deepcopy(stored)

    async def find_by_id(self, collection: str, document_id: str) -> Optional[Document]:
        document = self._collection(collection).get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def find_one(self, collection: str, **criteria: Any) -> Optional[Document]:
        for document in self._collection(collection).values():
            if all(document.get(key) == value for key, value in criteria.items()):
                return copy.deepcopy(document)
        return None

    async def find(
        self,
        collection: str,
        criteria: Optional[Mapping[str, Any]] = None,
        sort: str = "-createdAt",
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """
        Matching documents, sorted by one field.

        ``sort`` is a field name, prefixed with ``-`` for descending order.
        """
        criteria = criteria or {}
        matches = [
            document for document in self._collection(collection).values()
            if all(document.get(key) == value for key, value in criteria.items())
        ]

        descending = sort.startswith("-")
        sort_field = sort.lstrip("-")
        matches.sort(key=self._sort_key(sort_field), reverse=descending)

        end = None if limit is None else skip + limit
        return [copy.deepcopy(document) for document in matches[skip:end]]

    async def count(self, collection: str, criteria: Optional[Mapping[str, Any]] = None) -> int:
        criteria = criteria or {}
        return sum(
            1 for document in self._collection(collection).values()
            if all(document.get(key) == value for key, value in criteria.items())
        )

    async def update(self, collection: str, document_id: str, changes: Mapping[str, Any]) -> Optional[Document]:
        document = self._collection(collection).get(document_id)
        if document is None:
            return None
        document.update(copy.deepcopy(dict(changes)))
        document["_id"] = document_id
        document["updatedAt"] = utcnow_iso()
        return copy.deepcopy(document)

    async def push(self, collection: str, document_id: str, field: str, item: Any) -> Optional[Document]:
        """Append ``item`` to the list held in ``field``."""
        document = self._collection(collection).get(document_id)
        if document is None:
            return None
        document.setdefault(field, []).append(copy.deepcopy(item))
        document["updatedAt"] = utcnow_iso()
        return copy.deepcopy(document)

    async def delete(self, collection: str, document_id: str) -> bool:
        removed = self._collection(collection).pop(document_id, None)
        self._order.pop(document_id, None)
        return removed is not None

    def _sort_key(self, sort_field: str) -> Callable[[Document], Any]:
        def key(document: Document) -> Any:
            value = document.get(sort_field)
            return (value is not None, str(value) if value is not None else "", self._order.get(document["_id"], 0))

        return key


class DocumentIdentityStore:
    """Identity lookups served from the ``users`` collection."""

    def __init__(self, store: DocumentStore, collection: str = "users"):
        self.store = store
        self.collection = collection

    async def find_user(self, user_id: str) -> Optional[Document]:
        return await self.store.find_by_id(self.collection, user_id)
