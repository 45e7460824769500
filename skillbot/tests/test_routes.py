from __future__ import annotations

import pytest

from skillbot import create_app
from skillbot.errors import RetryExhausted, StoreUnavailable


@pytest.fixture
def app(manager):
    return create_app("testing", manager=manager)


@pytest.fixture
def client(app):
    return app.test_client()


def test_send_returns_both_messages(client, store):
    resp = client.post("/rs/skillbot/send", json={"user_id": "u1", "message": "hello"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user_message"]["content"] == "hello"
    assert body["agent_message"]["kind"] == "response"
    assert len(store.get("u1_skillbot").messages) == 3


@pytest.mark.parametrize("payload", [{}, {"user_id": "u1"}, {"message": "hi"}, {"user_id": "u1", "message": "   "}])
def test_send_validates_input(client, payload):
    assert client.post("/rs/skillbot/send", json=payload).status_code == 400


def test_send_passes_current_item(client, stub_core):
    item = {"id": "gig-logo", "title": "Minimalist Logo Design", "category": "design",
            "packages": {"basic": {"price": 350000, "deliveryTime": 3}}}
    client.post("/rs/skillbot/send", json={"user_id": "u1", "message": "worth it?", "current_item": item})

    assert stub_core.calls[0]["current_item"].id == "gig-logo"


def test_exhausted_retries_are_503(client, manager, monkeypatch):
    async def boom(*args, **kwargs):
        raise RetryExhausted("u1_skillbot", 2)

    monkeypatch.setattr(manager, "send", boom)
    resp = client.post("/rs/skillbot/send", json={"user_id": "u1", "message": "hello"})

    assert resp.status_code == 503
    assert resp.get_json()["error"] == RetryExhausted.user_message


def test_unexpected_errors_do_not_leak(client, manager, monkeypatch):
    async def boom(*args, **kwargs):
        raise KeyError("internal detail")

    monkeypatch.setattr(manager, "send", boom)
    resp = client.post("/rs/skillbot/send", json={"user_id": "u1", "message": "hello"})

    assert resp.status_code == 500
    assert "internal detail" not in resp.get_data(as_text=True)


def test_conversation_endpoint_creates_welcome(client):
    resp = client.get("/rs/skillbot/conversation/u1")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["id"] == "u1_skillbot"
    assert [m["kind"] for m in body["messages"]] == ["welcome"]


def test_reset_and_read(client, store, counter):
    client.post("/rs/skillbot/send", json={"user_id": "u1", "message": "hello"})
    assert counter.unread("u1", "skillbot") == 2

    assert client.post("/rs/skillbot/read", json={"user_id": "u1"}).status_code == 200
    assert counter.unread("u1", "skillbot") == 0

    assert client.post("/rs/skillbot/reset", json={"user_id": "u1"}).status_code == 200
    assert store.get("u1_skillbot") is None
    assert client.post("/rs/skillbot/reset", json={}).status_code == 400


def test_reset_store_outage_is_503(client, manager, monkeypatch):
    def down(user_id):
        raise StoreUnavailable("down")

    monkeypatch.setattr(manager, "reset", down)
    assert client.post("/rs/skillbot/reset", json={"user_id": "u1"}).status_code == 503


def test_health(client, store, monkeypatch):
    assert client.get("/rs/health").status_code == 200

    monkeypatch.setattr(store, "health_check", lambda: {"ping_success": False, "error": "refused"})
    assert client.get("/rs/health").status_code == 500


def test_unknown_endpoint_is_json_404(client):
    resp = client.get("/rs/nope")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Endpoint not found"
