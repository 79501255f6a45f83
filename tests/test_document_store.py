"""Tests for the document stores and the image storage backends."""

import pytest

from app.shared.core.exceptions import ExternalServiceError
from app.shared.infrastructure.database import (
    InMemoryDocumentStore,
    SQLDocumentStore,
    build_document_store,
)
from app.shared.infrastructure.storage import InMemoryImageStorage, LocalImageStorage, build_image_storage
from tests.conftest import make_settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def sql_settings(tmp_path):
    return make_settings(
        DOCUMENT_STORE_BACKEND="sql",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}",
    )


async def open_store(backend, tmp_path):
    store = InMemoryDocumentStore() if backend == "memory" else SQLDocumentStore.from_settings(sql_settings(tmp_path))
    await store.initialize()
    return store


@pytest.mark.parametrize("backend", ["memory", "sql"])
class TestDocumentStoreContract:
    """Both stores behave the same for the operations the routes use."""

    @pytest.mark.asyncio
    async def test_insert_and_find_by_id(self, backend, tmp_path):
        store = await open_store(backend, tmp_path)
        try:
            farm = await store.insert("farms", {"name": "Green Acres", "owner": "u1"})
            assert len(farm["_id"]) == 24
            assert farm["createdAt"] == farm["updatedAt"]

            assert await store.find_by_id("farms", farm["_id"]) == farm
            assert await store.find_by_id("crops", farm["_id"]) is None
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_find_one_by_fields(self, backend, tmp_path):
        store = await open_store(backend, tmp_path)
        try:
            await store.insert("users", {"email": "ramesh@krishivedha.in", "isActive": True})
            sita = await store.insert("users", {"email": "sita@krishivedha.in", "isActive": False})

            assert (await store.find_one("users", email="sita@krishivedha.in"))["_id"] == sita["_id"]
            assert (await store.find_one("users", isActive=False))["_id"] == sita["_id"]
            assert await store.find_one("users", email="nobody@krishivedha.in") is None
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_find_sorts_and_pages(self, backend, tmp_path):
        store = await open_store(backend, tmp_path)
        try:
            for name in ("Bajra", "Arhar", "Chana"):
                await store.insert("crops", {"name": name, "owner": "u1"})
            await store.insert("crops", {"name": "Moong", "owner": "u2"})

            by_name = await store.find("crops", {"owner": "u1"}, sort="name")
            assert [crop["name"] for crop in by_name] == ["Arhar", "Bajra", "Chana"]

            newest_first = await store.find("crops", {"owner": "u1"}, sort="-createdAt", skip=1, limit=1)
            assert [crop["name"] for crop in newest_first] == ["Arhar"]

            assert await store.count("crops", {"owner": "u1"}) == 3
            assert await store.count("crops") == 4
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_update_push_and_delete(self, backend, tmp_path):
        store = await open_store(backend, tmp_path)
        try:
            crop = await store.insert("crops", {"name": "Wheat", "images": []})

            updated = await store.update("crops", crop["_id"], {"status": "growing", "_id": "ignored"})
            assert updated["_id"] == crop["_id"]
            assert updated["status"] == "growing"

            pushed = await store.push("crops", crop["_id"], "images", {"id": "img-1"})
            assert pushed["images"] == [{"id": "img-1"}]
            assert (await store.find_by_id("crops", crop["_id"]))["images"] == [{"id": "img-1"}]

            assert await store.delete("crops", crop["_id"]) is True
            assert await store.delete("crops", crop["_id"]) is False
            assert await store.update("crops", crop["_id"], {"status": "harvested"}) is None
            assert await store.push("crops", crop["_id"], "images", {}) is None
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_health_check(self, backend, tmp_path):
        store = await open_store(backend, tmp_path)
        try:
            assert (await store.health_check())["status"] == "healthy"
        finally:
            await store.close()


class TestSQLDocumentStore:
    """Test behaviour specific to the SQL store."""

    @pytest.mark.asyncio
    async def test_documents_survive_a_new_engine(self, tmp_path):
        first = await open_store("sql", tmp_path)
        user = await first.insert("users", {"email": "ramesh@krishivedha.in"})
        await first.close()

        second = await open_store("sql", tmp_path)
        try:
            assert await second.find_one("users", email="ramesh@krishivedha.in") == user
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_nested_criteria_rejected(self, tmp_path):
        store = await open_store("sql", tmp_path)
        try:
            with pytest.raises(TypeError):
                await store.find("posts", {"author": {"_id": "u1"}})
        finally:
            await store.close()

    def test_backend_selection(self, tmp_path):
        assert isinstance(build_document_store(make_settings()), InMemoryDocumentStore)
        assert isinstance(build_document_store(sql_settings(tmp_path)), SQLDocumentStore)


class TestImageStorage:
    """Test the image storage backends."""

    @pytest.mark.asyncio
    async def test_local_storage_writes_file(self, tmp_path):
        storage = LocalImageStorage(str(tmp_path / "uploads"), "/uploads/")
        image = await storage.save("crops", "leaf.png", "image/png", PNG_BYTES)

        assert image.url == f"/uploads/crops/{image.id}.png"
        assert (tmp_path / "uploads" / "crops" / f"{image.id}.png").read_bytes() == PNG_BYTES
        assert image.size == len(PNG_BYTES)

    @pytest.mark.asyncio
    async def test_local_storage_write_failure(self, tmp_path):
        blocked = tmp_path / "blocked"
        blocked.write_text("not a directory")
        storage = LocalImageStorage(str(blocked))

        with pytest.raises(ExternalServiceError) as exc_info:
            await storage.save("crops", "leaf.png", "image/png", PNG_BYTES)
        assert exc_info.value.details["service"] == "image_storage"

    @pytest.mark.asyncio
    async def test_memory_storage_keeps_bytes(self):
        storage = InMemoryImageStorage()
        image = await storage.save("crops", "leaf.png", "image/png", PNG_BYTES)
        assert storage.blobs[image.id] == PNG_BYTES
        assert image.url == f"/uploads/crops/{image.id}"

    def test_backend_selection(self, tmp_path):
        assert isinstance(build_image_storage("memory", str(tmp_path), "/uploads"), InMemoryImageStorage)
        assert isinstance(build_image_storage("local", str(tmp_path), "/uploads"), LocalImageStorage)
