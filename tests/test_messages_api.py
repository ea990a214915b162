"""HTTP boundary tests for the message and queue routes."""

from uuid import uuid4

import pytest
from conftest import transfer
from fastapi.testclient import TestClient

from triage.conversations.models import Department
from triage.conversations.repository import InMemoryConversationRepository
from triage.conversations.service import TriageService
from triage.core.limits import limiter
from triage.main import create_app


@pytest.fixture
def client(monkeypatch, classifier):
    monkeypatch.setattr(limiter, "enabled", False)
    service = TriageService(InMemoryConversationRepository(), classifier)
    app = create_app(service, enable_metrics=False)
    return TestClient(app)


def test_post_without_conversation_id_starts_conversation(client):
    res = client.post("/messages", json={"content": "Hello"})

    assert res.status_code == 200
    data = res.json()
    assert set(data) == {
        "id",
        "status",
        "department",
        "summary",
        "createdAt",
        "updatedAt",
        "messages",
    }
    assert data["status"] == "OPEN"
    assert data["department"] is None
    assert [m["role"] for m in data["messages"]] == ["USER", "ASSISTANT"]
    assert data["messages"][0]["content"] == "Hello"
    assert data["messages"][0]["conversationId"] == data["id"]
    assert "createdAt" in data["messages"][0]


def test_transfer_flow_and_rejection_after_transfer(client, classifier):
    conversation_id = client.post("/messages", json={"content": "Hi"}).json()["id"]
    classifier.queue(
        transfer(
            Department.FINANCE,
            message="Transferring you now",
            summary="CPF collected, boleto overdue",
        )
    )

    res = client.post(
        "/messages", json={"conversationId": conversation_id, "content": "CPF 123"}
    )
    assert res.status_code == 200
    data = res.json()
    assert data["status"] == "TRANSFERRED"
    assert data["department"] == "FINANCE"
    assert data["summary"] == "CPF collected, boleto overdue"
    assert len(data["messages"]) == 4

    res = client.post(
        "/messages", json={"conversationId": conversation_id, "content": "Hello?"}
    )
    assert res.status_code == 400
    assert "transferred" in res.json()["error"]
    assert len(client.get(f"/messages/{conversation_id}").json()["messages"]) == 4


def test_post_with_unknown_conversation_returns_404(client):
    res = client.post(
        "/messages", json={"conversationId": str(uuid4()), "content": "Hello"}
    )

    assert res.status_code == 404
    assert "not found" in res.json()["error"]


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"content": ""},
        {"content": "x" * 2001},
        {"content": 42},
        {"conversationId": "not-an-id", "content": "Hello"},
    ],
)
def test_invalid_payloads_return_400(client, payload):
    res = client.post("/messages", json=payload)

    assert res.status_code == 400
    assert res.json()["error"]


def test_blank_content_is_rejected_by_service(client):
    res = client.post("/messages", json={"content": "   "})

    assert res.status_code == 400
    assert client.get("/messages").json() == []


def test_get_conversation(client):
    created = client.post("/messages", json={"content": "Hello"}).json()

    res = client.get(f"/messages/{created['id']}")

    assert res.status_code == 200
    assert res.json() == created


def test_get_unknown_conversation_returns_404(client):
    assert client.get(f"/messages/{uuid4()}").status_code == 404


def test_get_malformed_conversation_id_returns_400(client):
    assert client.get("/messages/abc").status_code == 400


def test_list_conversations_with_filters(client, classifier):
    first = client.post("/messages", json={"content": "Hello"}).json()
    classifier.queue(transfer(Department.SALES))
    sales = client.post("/messages", json={"content": "Discount"}).json()
    latest = client.post("/messages", json={"content": "Hi"}).json()

    res = client.get("/messages")
    assert res.status_code == 200
    assert [c["id"] for c in res.json()] == [latest["id"], sales["id"], first["id"]]

    res = client.get("/messages", params={"department": "SALES"})
    assert [c["id"] for c in res.json()] == [sales["id"]]

    res = client.get("/messages", params={"status": "OPEN"})
    assert [c["id"] for c in res.json()] == [latest["id"], first["id"]]

    assert client.get("/messages", params={"status": "PENDING"}).status_code == 400


def test_queue_overview(client, classifier):
    client.post("/messages", json={"content": "Hello"})
    classifier.queue(transfer(Department.SUPPORT))
    client.post("/messages", json={"content": "Broken"})

    res = client.get("/queues")

    assert res.status_code == 200
    data = res.json()
    assert data["total"] == 2
    assert data["totals"] == {"OPEN": 1, "TRANSFERRED": 1, "CLOSED": 0}
    assert {
        "department": "SUPPORT",
        "label": "Support",
        "status": "TRANSFERRED",
        "count": 1,
    } in data["queues"]


def test_root_health_and_version(client):
    assert client.get("/").json()["health"] == "/health"

    health = client.get("/health").json()
    assert health["status"] == "ok"
    assert health["classifier"] in {"enabled", "fallback"}

    assert "version" in client.get("/version").json()


def test_rate_limit_applies_to_message_submission(monkeypatch, classifier):
    monkeypatch.setenv("MESSAGES_RATE_LIMIT", "2/minute")
    from triage.core.settings import reset_settings_cache

    reset_settings_cache()
    limiter.reset()
    try:
        service = TriageService(InMemoryConversationRepository(), classifier)
        client = TestClient(create_app(service, enable_metrics=False))
        statuses = [
            client.post("/messages", json={"content": "Hello"}).status_code
            for _ in range(3)
        ]
    finally:
        monkeypatch.delenv("MESSAGES_RATE_LIMIT")
        reset_settings_cache()
        limiter.reset()

    assert statuses == [200, 200, 429]


def test_default_app_exposes_metrics():
    from triage.main import app

    res = TestClient(app).get("/metrics")

    assert res.status_code == 200
    assert "http_request" in res.text or "python_info" in res.text


def test_configured_max_length_governs_http_submissions(monkeypatch, classifier):
    monkeypatch.setattr(limiter, "enabled", False)
    service = TriageService(
        InMemoryConversationRepository(), classifier, max_message_length=3000
    )
    client = TestClient(create_app(service, enable_metrics=False))

    accepted = client.post("/messages", json={"content": "x" * 2500})
    rejected = client.post("/messages", json={"content": "x" * 3001})

    assert accepted.status_code == 200
    assert len(accepted.json()["messages"][0]["content"]) == 2500
    assert rejected.status_code == 400
    assert "3000" in rejected.json()["error"]


def test_health_reports_unknown_provider_as_misconfigured(client, monkeypatch):
    from triage.core.settings import reset_settings_cache

    monkeypatch.setenv("LLM_PROVIDER", "acme")
    reset_settings_cache()
    try:
        res = client.get("/health")
    finally:
        monkeypatch.delenv("LLM_PROVIDER")
        reset_settings_cache()

    assert res.status_code == 200
    assert res.json()["classifier"] == "misconfigured"
