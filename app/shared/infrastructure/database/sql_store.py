"""
SQLAlchemy-backed document store.

Documents keep their Mongo-style shape (``_id`` is a 24-hex-character
object id) and are stored as a JSON column in one ``documents`` table,
keyed by collection and id. Criteria and sorting work on top-level
document fields.
"""

import copy
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import JSON, ColumnElement, Integer, String, UniqueConstraint, delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.shared.config.settings import Settings
from app.shared.utils.logging import get_logger

from .connection import check_database, create_database_engine
from .document_store import Document, new_object_id, utcnow_iso

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class DocumentRecord(Base):
    """One document of one collection."""

    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("collection", "document_id", name="uq_documents_collection_document_id"),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    document_id: Mapped[str] = mapped_column(String(24), nullable=False)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)


def field_equals(field: str, value: Any) -> ColumnElement[bool]:
    """Condition matching documents whose top-level ``field`` equals ``value``."""
    column = DocumentRecord.data[field]
    if isinstance(value, Enum):
        value = value.value
    if value is None:
        return column.as_string().is_(None)
    if isinstance(value, bool):
        return column.as_boolean() == value
    if isinstance(value, int):
        return column.as_integer() == value
    if isinstance(value, float):
        return column.as_float() == value
    if isinstance(value, str):
        return column.as_string() == value
    raise TypeError(f"Unsupported criteria value for {field!r}: {type(value).__name__}")


class SQLDocumentStore:
    """Document collections persisted through an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SQLDocumentStore":
        return cls(create_database_engine(settings))

    async def initialize(self) -> None:
        """Create the documents table if it does not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Document tables ready", backend=self.engine.url.get_backend_name())

    async def close(self) -> None:
        await self.engine.dispose()

    async def health_check(self) -> Dict[str, Any]:
        return await check_database(self.engine)

    def _conditions(self, collection: str, criteria: Optional[Mapping[str, Any]] = None) -> List[ColumnElement[bool]]:
        conditions = [DocumentRecord.collection == collection]
        conditions.extend(field_equals(key, value) for key, value in (criteria or {}).items())
        return conditions

    def _by_id(self, collection: str, document_id: str):
        return select(DocumentRecord).where(
            DocumentRecord.collection == collection,
            DocumentRecord.document_id == document_id,
        )

    async def insert(self, collection: str, document: Mapping[str, Any]) -> Document:
        stored = copy.deepcopy(dict(document))
        stored.setdefault("_id", new_object_id())
        now = utcnow_iso()
        stored.setdefault("createdAt", now)
        stored["updatedAt"] = now

        async with self._sessions.begin() as session:
            session.add(DocumentRecord(collection=collection, document_id=stored["_id"], data=stored))

        logger.debug("Document inserted", collection=collection, document_id=stored["_id"])
        return copy.deepcopy(stored)

    async def find_by_id(self, collection: str, document_id: str) -> Optional[Document]:
        async with self._sessions() as session:
            record = await session.scalar(self._by_id(collection, document_id))
        return dict(record.data) if record is not None else None

    async def find_one(self, collection: str, **criteria: Any) -> Optional[Document]:
        statement = (
            select(DocumentRecord)
            .where(*self._conditions(collection, criteria))
            .order_by(DocumentRecord.seq)
            .limit(1)
        )
        async with self._sessions() as session:
            record = await session.scalar(statement)
        return dict(record.data) if record is not None else None

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

        ``sort`` is a field name, prefixed with ``-`` for descending order;
        ties keep insertion order in the same direction.
        """
        sort_value = DocumentRecord.data[sort.lstrip("-")].as_string()
        if sort.startswith("-"):
            ordering = (sort_value.desc(), DocumentRecord.seq.desc())
        else:
            ordering = (sort_value.asc(), DocumentRecord.seq.asc())

        statement = select(DocumentRecord).where(*self._conditions(collection, criteria)).order_by(*ordering)
        if skip:
            statement = statement.offset(skip)
        if limit is not None:
            statement = statement.limit(limit)

        async with self._sessions() as session:
            records = (await session.scalars(statement)).all()
        return [dict(record.data) for record in records]

    async def count(self, collection: str, criteria: Optional[Mapping[str, Any]] = None) -> int:
        statement = select(func.count()).select_from(DocumentRecord).where(*self._conditions(collection, criteria))
        async with self._sessions() as session:
            return int(await session.scalar(statement) or 0)

    async def update(self, collection: str, document_id: str, changes: Mapping[str, Any]) -> Optional[Document]:
        async with self._sessions.begin() as session:
            record = await session.scalar(self._by_id(collection, document_id).with_for_update())
            if record is None:
                return None
            data = dict(record.data)
            data.update(copy.deepcopy(dict(changes)))
            data["_id"] = document_id
            data["updatedAt"] = utcnow_iso()
            record.data = data
        return copy.deepcopy(data)

    async def push(self, collection: str, document_id: str, field: str, item: Any) -> Optional[Document]:
        """Append ``item`` to the list held in ``field``."""
        async with self._sessions.begin() as session:
            record = await session.scalar(self._by_id(collection, document_id).with_for_update())
            if record is None:
                return None
            data = dict(record.data)
            data[field] = list(data.get(field) or []) + [copy.deepcopy(item)]
            data["updatedAt"] = utcnow_iso()
            record.data = data
        return copy.deepcopy(data)

    async def delete(self, collection: str, document_id: str) -> bool:
        statement = delete(DocumentRecord).where(
            DocumentRecord.collection == collection,
            DocumentRecord.document_id == document_id,
        )
        async with self._sessions.begin() as session:
            result = await session.execute(statement)
        return result.rowcount > 0
