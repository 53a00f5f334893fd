"""
Shared fixtures: an in-memory app client, a SQLite-backed persistent backend
and helpers for registering accounts and creating resources.
"""
import asyncio
import os
import tempfile

# Settings are read once at import time, so the environment goes first.
os.environ["DATABASE_ENABLED"] = "false"
os.environ["SEED_DEMO_ACCOUNTS"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MOCK_PROVIDER_DELAY_SECONDS"] = "0"
os.environ["ENABLE_RATE_LIMITING"] = "false"
os.environ["ENABLE_FILE_LOGGING"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["UPLOAD_DIRECTORY"] = tempfile.mkdtemp(prefix="uploads-")
for key in ("OPENAI_API_KEY", "CLAUDE_API_KEY", "GEMINI_API_KEY"):
    os.environ.pop(key, None)

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

import services.ai_manager as ai_manager_module
import storage.selector as selector
from app import create_app
from core.rate_limiting import rate_limiter
from db_config import DatabaseManager
from storage.errors import ConnectivityError
from storage.persistent import PersistentBackend
from storage.volatile import VolatileBackend, VolatileStore

DEFAULT_PASSWORD = "Passw0rd"


def resource_payload(**overrides) -> dict:
    payload = {
        "title": "Fractions for beginners",
        "description": "Introductory worksheet on fractions",
        "contentType": "text",
        "category": "worksheet",
        "content": {"data": "1/2 + 1/4 = ?", "format": "markdown"},
        "metadata": {
            "subject": "math",
            "gradeLevel": ["grade-4"],
            "difficulty": "beginner",
            "estimatedTime": 30,
        },
        "tags": ["math", "fractions"],
    }
    payload.update(overrides)
    return payload


class _UnreachableRepository:
    def __init__(self, backend):
        self._backend = backend

    def __getattr__(self, method):
        async def fail(*args, **kwargs):
            self._backend.attempts.append(method)
            raise ConnectivityError(method, OSError("connection refused"))
        return fail


class UnreachableBackend:
    """Claims to be connected, then fails every operation."""

    name = "persistent"

    def __init__(self, available=True):
        self.available = available
        self.attempts = []
        self.accounts = _UnreachableRepository(self)
        self.resources = _UnreachableRepository(self)
        self.generations = _UnreachableRepository(self)

    def is_available(self):
        return self.available


def resource_document(creator: str, **overrides) -> dict:
    """A stored-shape resource document for backend-level tests."""
    document = {
        "title": "Photosynthesis",
        "description": "How plants make food",
        "content_type": "text",
        "category": "lesson_plan",
        "content": {"data": "Light + water + CO2", "format": "markdown"},
        "metadata": {"subject": "biology", "difficulty": "intermediate", "estimated_time": 45},
        "tags": ["science"],
        "creator": creator,
    }
    document.update(overrides)
    return document


def account_document(username: str, **overrides) -> dict:
    document = {
        "username": username,
        "email": f"{username}@example.com",
        "password_hash": "not-a-real-hash",
        "role": "student",
        "profile": {"display_name": username},
    }
    document.update(overrides)
    return document


@pytest.fixture(autouse=True)
def reset_state(monkeypatch):
    """Every test starts with an empty in-memory store and a fresh AI manager."""
    selector.volatile_store.reset()
    rate_limiter.reset()
    monkeypatch.setattr(ai_manager_module, "_ai_manager", None)
    yield
    selector.volatile_store.reset()


@pytest.fixture
def app():
    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def register(client):
    """Register an account over HTTP and return ``(user, headers)``."""

    def _register(username: str, role: str = "student", password: str = DEFAULT_PASSWORD):
        response = client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "password": password,
                "role": role,
            },
        )
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def create_resource(client):
    def _create(headers: dict, **overrides) -> dict:
        response = client.post("/api/resources", json=resource_payload(**overrides), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]["resource"]

    return _create


@pytest.fixture
def sqlite_manager(tmp_path):
    """A connected DatabaseManager over a throwaway SQLite file."""
    manager = DatabaseManager(url=f"sqlite+aiosqlite:///{tmp_path / 'resources.db'}", enabled=True)
    assert asyncio.run(manager.connect())
    yield manager
    asyncio.run(manager.dispose())


@pytest.fixture
def persistent_mode(monkeypatch, sqlite_manager):
    """Route HTTP requests to the SQLite-backed persistent backend."""
    backend = PersistentBackend(sqlite_manager)
    monkeypatch.setattr(selector, "persistent_backend", backend)
    return backend


@pytest_asyncio.fixture
async def sqlite_backend(tmp_path):
    manager = DatabaseManager(url=f"sqlite+aiosqlite:///{tmp_path / 'store.db'}", enabled=True)
    assert await manager.connect()
    yield PersistentBackend(manager)
    await manager.dispose()


@pytest_asyncio.fixture(params=["volatile", "persistent"])
async def backend(request, tmp_path):
    """Each backend-level test runs once per storage backend."""
    if request.param == "volatile":
        yield VolatileBackend(VolatileStore())
        return
    manager = DatabaseManager(url=f"sqlite+aiosqlite:///{tmp_path / 'store.db'}", enabled=True)
    assert await manager.connect()
    yield PersistentBackend(manager)
    await manager.dispose()
