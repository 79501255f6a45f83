"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient

from app.main import create_application
from app.shared.config.settings import Settings
from app.shared.infrastructure.database import InMemoryDocumentStore
from app.shared.infrastructure.storage import InMemoryImageStorage

TEST_PASSWORD = "kharif2024"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_000_000):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class SleepRecorder:
    """Async sleep replacement recording the requested delays in seconds."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "test",
        "JWT_SECRET_KEY": "test-secret-key",
        "LOG_FORMAT": "text",
        "LOG_LEVEL": "WARNING",
        "RATE_LIMIT_BACKEND": "memory",
        "DOCUMENT_STORE_BACKEND": "memory",
        "IMAGE_STORAGE_BACKEND": "memory",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def document_store():
    return InMemoryDocumentStore()


@pytest.fixture
def image_storage():
    return InMemoryImageStorage()


@pytest.fixture
def app(settings, document_store, image_storage, clock, sleeps):
    return create_application(
        settings=settings,
        document_store=document_store,
        image_storage=image_storage,
        clock=clock,
        retry_sleep=sleeps,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user through the API and return ``(user, token)``."""

    def _register(name="Ramesh Kumar", email="ramesh@krishivedha.in", password=TEST_PASSWORD, **extra):
        response = client.post(
            "/api/v1/auth/register",
            json={"name": name, "email": email, "password": password, **extra},
        )
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"], data["token"]

    return _register


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
