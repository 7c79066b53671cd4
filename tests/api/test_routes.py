import json
import time
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from chatvibe.api.auth import client_runtime, require_api_key
from chatvibe.core.runtime import ClientRuntime
from chatvibe.main import app
from chatvibe.settings import settings
from chatvibe.store.marker_store import MarkerStore


@pytest.fixture
def rt(backend, remote_factory, fake_redis):
    return ClientRuntime(
        "dev-1",
        remote=remote_factory(backend),
        markers=MarkerStore("dev-1", redis=fake_redis),
        notifier=MagicMock(),
    )


@pytest.fixture
def client(rt):
    app.dependency_overrides[require_api_key] = lambda: None
    app.dependency_overrides[client_runtime] = lambda: rt
    with TestClient(app) as c:
        yield c
    app.dependency_overrides = {}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_api_key_enforced_when_configured(rt):
    app.dependency_overrides[client_runtime] = lambda: rt
    try:
        with patch.object(settings, "API_KEY", "secret"):
            c = TestClient(app)
            assert c.get("/lifecycle").status_code == 401
            assert c.get("/lifecycle", headers={"x-api-key": "secret"}).status_code == 200
    finally:
        app.dependency_overrides = {}


def test_auth_state_runs_startup_check(client, backend):
    backend.routes[("GET", "/auth/status")] = (200, {"authorized": False})
    body = client.get("/auth/state").json()
    assert body["session"] == {"authorized": False, "checked": True, "phone": "", "step": "phone"}
    assert body["form"]["countryCode"] == "+7"


def test_phone_then_code_signs_in(client, backend):
    backend.routes[("GET", "/auth/status")] = (200, {"authorized": False})
    backend.routes[("POST", "/auth/send-code")] = (200, {"message": "Code sent"})
    backend.routes[("POST", "/auth/sign-in")] = (200, {"success": True})

    body = client.post("/auth/phone", json={"phone": "999 123 45 67", "countryCode": "+7"}).json()
    assert body["session"]["step"] == "code"
    assert body["session"]["phone"] == "+79991234567"

    for i, d in enumerate("4201"):
        client.post("/auth/code/input", json={"index": i, "text": d})
    body = client.post("/auth/code/input", json={"index": 4, "text": "9"}).json()

    assert body["session"]["authorized"] is True
    assert len(backend.calls_to("POST", "/auth/sign-in")) == 1
    events = client.get("/ui/events").json()["events"]
    assert events[-1]["kind"] == "haptic"
    assert events[-1]["level"] == "success"


def test_short_phone_is_rejected_locally(client, backend):
    body = client.post("/auth/phone", json={"phone": "12"}).json()
    assert body["session"]["step"] == "phone"
    assert body["form"]["status"] == "Phone number must contain 7 to 16 digits"
    assert backend.calls_to("POST", "/auth/send-code") == []


def test_code_index_is_validated(client):
    assert client.post("/auth/code/input", json={"index": 5, "text": "1"}).status_code == 422


def test_lifecycle_and_pending(client, fake_redis):
    fake_redis.data["pending_analysis:dev-1"] = json.dumps(
        {"chatId": 3, "chatTitle": "C", "type": "what_to_answer", "timestamp": 5}
    )
    assert client.post("/lifecycle", json={"state": "background"}).json() == {
        "state": "background", "resumedFromBackground": False,
    }
    assert client.post("/lifecycle", json={"state": "active"}).json()["resumedFromBackground"] is True
    pending = client.get("/pending").json()["pending"]
    assert pending["chatId"] == 3
    assert client.post("/lifecycle", json={"state": "sleeping"}).status_code == 422


def test_intro_flag(client):
    assert client.get("/intro").json() == {"shown": False}
    assert client.post("/intro").json() == {"shown": True}
    assert client.get("/intro").json() == {"shown": True}


def test_chat_drawer_and_analysis(client, backend, fake_redis):
    backend.routes[("GET", "/chats")] = (200, [{"id": 42, "title": "Alice", "type": "private", "avatar_url": "/a.png"}])
    backend.routes[("POST", "/chats/42/analyze")] = (200, {"analysis": "Warm and direct."})

    chats = client.get("/chats", params={"kind": "personal"}).json()
    assert chats[0]["avatarUrl"] == "https://chatvibe.dategram.io/a.png"

    assert client.post("/chats/42/drawer").json()["step"] == "type_selection"
    assert client.post("/chats/42/drawer/type", json={"category": "personal"}).json()["step"] == "option_selection"

    started = client.post("/chats/42/analyze", json={"kind": "communication_character", "tone": "direct"})
    assert started.status_code == 200
    assert started.json()["started"] is True

    drawer = None
    for _ in range(50):
        drawer = client.get("/chats/42/drawer").json()
        if drawer["step"] == "settled":
            break
        time.sleep(0.01)
    assert drawer["step"] == "settled"
    assert drawer["result"] == {"analysis": "Warm and direct."}
    assert "pending_analysis:dev-1" not in fake_redis.data


def test_unknown_chat_is_404(client):
    assert client.post("/chats/999/drawer").status_code == 404
    assert client.get("/chats/999/drawer").status_code == 404


def test_drawer_type_requires_open_drawer(client, backend):
    backend.routes[("GET", "/chats")] = (200, [{"id": 1, "title": "A"}])
    client.get("/chats")
    resp = client.post("/chats/1/drawer/type", json={"category": "business"})
    assert resp.status_code == 422


def test_chats_unauthorized_maps_to_401(client, backend):
    backend.routes[("GET", "/chats")] = (401, {})
    resp = client.get("/chats")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "You are not signed in."


def test_analysis_refused_when_marker_cannot_be_written(client, backend, fake_redis):
    backend.routes[("GET", "/chats")] = (200, [{"id": 42, "title": "Alice", "type": "private"}])
    backend.routes[("POST", "/chats/42/analyze")] = (200, {"analysis": "x"})
    fake_redis.set.side_effect = ConnectionError("redis down")
    client.get("/chats")
    client.post("/chats/42/drawer")

    resp = client.post("/chats/42/analyze", json={"kind": "what_to_answer"})
    assert resp.status_code == 502
    assert backend.calls_to("POST", "/chats/42/analyze") == []
    assert client.get("/chats/42/drawer").json()["step"] == "type_selection"
