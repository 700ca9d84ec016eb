"""
HTTP-level tests for the paste API, HTML views and health check.
"""
import inspect
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from pastebin.config import settings
from pastebin.errors import StoreUnavailable
from pastebin.lifecycle import PasteService, get_paste_service
from pastebin.main import app
from pastebin.routes import health, pastes
from tests.conftest import T0


def create(client, headers=None, **body):
    return client.post("/api/pastes", json=body, headers=headers or {})


def test_healthz(client):
    r = client.get("/api/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_root_serves_create_form(client):
    r = client.get("/")
    assert r.status_code == 200
    assert 'id="paste-form"' in r.text


def test_create_returns_id_and_url(client):
    r = create(client, content="hello")
    assert r.status_code == 201
    data = r.json()
    assert data["url"] == f"http://testserver/p/{data['id']}"


def test_create_uses_configured_domain(client, monkeypatch):
    monkeypatch.setattr(settings, "APP_DOMAIN", "https://paste.example.com/")
    data = create(client, content="hello").json()
    assert data["url"] == f"https://paste.example.com/p/{data['id']}"


@pytest.mark.parametrize(
    "body, detail",
    [
        ({}, "content is required and must be a non-empty string"),
        ({"content": ""}, "content is required and must be a non-empty string"),
        ({"content": "   "}, "content is required and must be a non-empty string"),
        ({"content": 5}, "content is required and must be a non-empty string"),
        ({"content": "x", "ttl_seconds": 0}, "ttl_seconds must be an integer >= 1"),
        ({"content": "x", "ttl_seconds": "10"}, "ttl_seconds must be an integer >= 1"),
        ({"content": "x", "max_views": 0}, "max_views must be an integer >= 1"),
        ({"content": "x", "max_views": 1.5}, "max_views must be an integer >= 1"),
        ({"content": "x", "max_views": 1.0}, "max_views must be an integer >= 1"),
    ],
)
def test_create_rejects_invalid_input(client, body, detail):
    r = client.post("/api/pastes", json=body)
    assert r.status_code == 400
    assert r.json() == {"detail": detail}


def test_create_rejects_malformed_json(client):
    r = client.post(
        "/api/pastes", content="{not json", headers={"Content-Type": "application/json"}
    )
    assert r.status_code == 400


def test_fetch_unlimited_paste(client):
    paste_id = create(client, content="y").json()["id"]
    for _ in range(5):
        r = client.get(f"/api/pastes/{paste_id}")
        assert r.status_code == 200
        assert r.json() == {"content": "y", "remaining_views": None, "expires_at": None}


def test_single_view_paste(client):
    paste_id = create(client, content="hello", max_views=1).json()["id"]

    r = client.get(f"/api/pastes/{paste_id}")
    assert r.status_code == 200
    assert r.json()["remaining_views"] == 0

    gone = client.get(f"/api/pastes/{paste_id}")
    never = client.get("/api/pastes/does-not-exist")
    assert gone.status_code == never.status_code == 404
    assert gone.json() == never.json()


def test_expiry_with_test_clock(client):
    paste_id = create(client, {"x-test-now-ms": str(T0)}, content="x", ttl_seconds=1).json()["id"]

    r = client.get(f"/api/pastes/{paste_id}", headers={"x-test-now-ms": str(T0 + 500)})
    assert r.status_code == 200
    assert r.json()["expires_at"] == "2023-11-14T22:13:21.000Z"

    r = client.get(f"/api/pastes/{paste_id}", headers={"x-test-now-ms": str(T0 + 1500)})
    assert r.status_code == 404


def test_test_clock_ignored_outside_test_mode(client, monkeypatch):
    monkeypatch.setattr(settings, "TEST_MODE", False)
    paste_id = create(client, content="x", ttl_seconds=60).json()["id"]
    far_future = str(T0 * 2)
    r = client.get(f"/api/pastes/{paste_id}", headers={"x-test-now-ms": far_future})
    assert r.status_code == 200


def test_html_view_escapes_and_counts(client):
    paste_id = create(client, content="<script>alert(1)</script>", max_views=2).json()["id"]

    r = client.get(f"/p/{paste_id}")
    assert r.status_code == 200
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in r.text
    assert "<script>alert(1)</script>" not in r.text
    assert "Views remaining: 1" in r.text

    assert client.get(f"/api/pastes/{paste_id}").json()["remaining_views"] == 0
    assert client.get(f"/p/{paste_id}").status_code == 404


def test_html_view_not_found(client):
    r = client.get("/p/nothing-here")
    assert r.status_code == 404
    assert "not found" in r.text


@pytest.fixture
def broken_client():
    store = MagicMock()
    store.get.side_effect = StoreUnavailable("down")
    store.put.side_effect = StoreUnavailable("down")
    store.ping.return_value = False
    app.dependency_overrides[get_paste_service] = lambda: PasteService(store)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_store_failure_is_not_a_404(broken_client):
    assert broken_client.get("/api/pastes/abc").status_code == 503
    assert broken_client.get("/p/abc").status_code == 503
    assert broken_client.post("/api/pastes", json={"content": "x"}).status_code == 503
    assert broken_client.get("/api/healthz").json() == {"ok": False}


def test_corrupt_entry_is_not_a_500(client, memory_store):
    memory_store._entries["paste:broken"] = ({"id": "broken", "created_at": "soon"}, None)
    assert client.get("/api/pastes/broken").status_code == 503
    assert client.get("/p/broken").status_code == 503


@pytest.mark.parametrize(
    "handler",
    [pastes.create_paste, pastes.fetch_paste, pastes.view_paste, health.health_check],
)
def test_store_handlers_run_in_threadpool(handler):
    # Sync handlers keep blocking Redis calls off the event loop
    assert not inspect.iscoroutinefunction(handler)
