"""
pytest configuration and shared fixtures for Pastebin Lite tests.
"""
import os

# Settings are read at import time; keep tests off any real Redis
os.environ.setdefault("STORE_BACKEND", "memory")

import fakeredis
import pytest
from fastapi.testclient import TestClient

from pastebin.config import settings
from pastebin.database import InMemoryRecordStore, RedisRecordStore
from pastebin.lifecycle import PasteService, get_paste_service
from pastebin.main import app

T0 = 1_700_000_000_000


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def redis_store(fake_redis) -> RedisRecordStore:
    return RedisRecordStore(fake_redis)


@pytest.fixture(params=["memory", "redis"])
def store(request):
    """Each store adapter in turn."""
    if request.param == "memory":
        return InMemoryRecordStore()
    return RedisRecordStore(fakeredis.FakeRedis(decode_responses=True))


@pytest.fixture
def service(store) -> PasteService:
    return PasteService(store)


@pytest.fixture
def client(memory_store, monkeypatch):
    """API client backed by a fresh in-memory store, with TEST_MODE on."""
    monkeypatch.setattr(settings, "TEST_MODE", True)
    monkeypatch.setattr(settings, "APP_DOMAIN", "")
    app.dependency_overrides[get_paste_service] = lambda: PasteService(memory_store)
    yield TestClient(app)
    app.dependency_overrides.clear()
