from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from bookshelf.core.config import settings
from bookshelf.core.kv import MemoryKeyValueStore, get_kv
from bookshelf.main import app
from bookshelf.services.storage import MemoryStorage, get_storage


PASSWORD = "correct horse battery staple"


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def blobs() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def client(kv, blobs, monkeypatch):
    monkeypatch.setattr(settings, "PUBLISH_PASSWORD", PASSWORD)
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "")
    app.dependency_overrides[get_kv] = lambda: kv
    app.dependency_overrides[get_storage] = lambda: blobs
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def token(client) -> str:
    response = client.post("/api/session", json={"password": PASSWORD})
    assert response.status_code == 201
    return response.json()["token"]


@pytest.fixture
def password() -> str:
    return PASSWORD
