"""Tests for the HTTP transport surface."""

import base64

import pytest
import redis
from fastapi.testclient import TestClient

from paychat.api import app, get_engine
from paychat.collaborators import StubPaymentService, StubSessionProvider, UserSession
from paychat.config import Settings
from paychat.engine import build_engine
from paychat.store import KeyValueStore
from paychat.tts import StubTTSProvider


class BrokenRedis:
    def exists(self, *keys):
        raise redis.ConnectionError("connection refused")


@pytest.fixture
def payments():
    return StubPaymentService()


@pytest.fixture
def engine(store, payments):
    sessions = StubSessionProvider(
        {"alice": UserSession(session_id="sess-1", subject_id="alice", account_id="acct_alice")}
    )
    return build_engine(
        Settings(), store=store, sessions=sessions, payments=payments, tts=StubTTSProvider()
    )


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def post(client, text, sender="alice", **extra):
    return client.post("/v1/messages", json={"sender_id": sender, "text": text, **extra})


class TestMessages:
    def test_help(self, client):
        response = post(client, "help")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert "Available commands" in data["message"]
        assert data["error"] is None
        assert data["voice"] is None
        assert data["execution_time_ms"] is not None

    def test_error_shape(self, client):
        data = post(client, "balance", sender="mallory").json()
        assert data["success"] is False
        assert data["error"]["code"] == "NOT_AUTHENTICATED"
        assert data["error"]["retryable"] is False

    def test_confirmation_round_trip(self, client, payments):
        prompt = post(client, "send 10 to @bob").json()
        assert [b["id"] for b in prompt["buttons"]] == ["yes", "no"]
        assert payments.sent == []

        done = post(client, "yes").json()
        assert done["success"] is True
        assert len(payments.sent) == 1

    def test_voice_reply_is_base64_wav(self, client):
        data = post(client, "what is my balance", is_voice=True).json()
        audio = base64.b64decode(data["voice"])
        assert audio.startswith(b"RIFF")
        assert data["voice_only"] is False

    @pytest.mark.parametrize(
        "payload",
        [
            {"text": "help"},
            {"sender_id": "", "text": "help"},
            {"sender_id": "alice"},
            {"sender_id": "alice", "text": "x" * 4001},
        ],
    )
    def test_invalid_payload(self, client, payload):
        assert client.post("/v1/messages", json=payload).status_code == 422


class TestStatus:
    def test_memory_store_is_ok(self, client):
        data = client.get("/v1/status").json()
        assert data["status"] == "ok"
        assert data["dependencies"] == [
            {"name": "store:memory", "status": "ok", "message": "Store reachable"}
        ]

    def test_unreachable_redis_is_degraded(self, engine, cipher):
        engine.store = KeyValueStore(redis_client=BrokenRedis(), cipher=cipher)
        app.dependency_overrides[get_engine] = lambda: engine
        try:
            data = TestClient(app).get("/v1/status").json()
        finally:
            app.dependency_overrides.clear()

        assert data["status"] == "degraded"
        assert data["dependencies"][0]["name"] == "store:redis"
        assert data["dependencies"][0]["status"] == "unavailable"


class TestMetricsEndpoint:
    def test_disabled_by_default(self, client, monkeypatch):
        monkeypatch.delenv("PAYCHAT_ENABLE_METRICS", raising=False)
        assert client.get("/v1/metrics").status_code == 404

    def test_enabled(self, client, monkeypatch):
        monkeypatch.setenv("PAYCHAT_ENABLE_METRICS", "true")
        response = client.get("/v1/metrics")
        assert response.status_code == 200
        assert "command_counts" in response.json()
