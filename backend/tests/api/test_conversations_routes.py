"""Pruebas de las rutas de conversaciones con Supabase y WAHA simulados."""

from datetime import datetime, timezone
from typing import Any

import pytest
from httpx import AsyncClient

from zapdesk.models.conversation import Conversation, Lead, Message
from zapdesk.services import storage, waha

NOW = datetime(2024, 5, 10, 14, 30, tzinfo=timezone.utc)

LEAD = Lead(
    id="lead-1",
    protocol="ZAP-0001",
    name="Maria Souza",
    whatsapp_phone="11987654321",
    status="em_atendimento",
)
CONVERSATION = Conversation(
    id="conv-1",
    lead_id="lead-1",
    protocol="ZAP-0001",
    started_at=NOW,
    last_activity=NOW,
    lead=LEAD,
)


def _message(**overrides: Any) -> Message:
    data = {
        "id": "msg-1",
        "conversation_id": "conv-1",
        "content": "Olá",
        "is_bot": True,
        "timestamp": NOW,
    }
    data.update(overrides)
    return Message.model_validate(data)


class RecordingManager:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, Any]] = []

    async def broadcast_new_message(self, conversation_id: str, message: Any) -> int:
        self.events.append(("message:new", conversation_id, message))
        return 1

    async def broadcast_conversation_update(self, conversation_id: str, conversation: Any) -> int:
        self.events.append(("conversation:update", conversation_id, conversation))
        return 1


class FakeWaha:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    async def send_text(self, phone: str, text: str) -> dict[str, Any]:
        if self.fail:
            raise waha.WahaError("WAHA respondió 500", status_code=500)
        self.sent.append((phone, text))
        return {"id": {"_serialized": "true_5511987654321@c.us_ABC"}}


@pytest.fixture(name="recording_manager")
def fixture_recording_manager(monkeypatch: pytest.MonkeyPatch) -> RecordingManager:
    recorder = RecordingManager()
    monkeypatch.setattr("zapdesk.api.routes.conversations.manager", recorder)
    return recorder


async def test_list_requires_authentication(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/conversations")

    assert response.status_code == 401
    assert response.json()["detail"] == {
        "error": "Unauthorized",
        "message": "Authentication required",
    }


async def test_list_passes_filters_to_storage(
    auth_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    captured: dict[str, Any] = {}

    async def fake_list(**kwargs: Any) -> list[Conversation]:
        captured.update(kwargs)
        return [CONVERSATION]

    monkeypatch.setattr(storage, "list_conversations", fake_list)

    response = await auth_client.get(
        "/api/conversations",
        params={"status": "active", "leadId": "lead-1", "dateFrom": "2024-05-01T00:00:00Z"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body[0]["leadId"] == "lead-1"
    assert body[0]["lead"]["whatsappPhone"] == "11987654321"
    assert captured["status"] == "active"
    assert captured["lead_id"] == "lead-1"
    assert captured["date_from"] == datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert captured["date_to"] is None


async def test_list_maps_storage_errors_to_502(
    auth_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def fail(**_kwargs: Any) -> list[Conversation]:
        raise storage.StorageError("Supabase caído")

    monkeypatch.setattr(storage, "list_conversations", fail)

    response = await auth_client.get("/api/conversations")

    assert response.status_code == 502
    assert response.json()["detail"] == "Supabase caído"


async def test_messages_use_default_limit(
    auth_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    captured: dict[str, Any] = {}

    async def fake_messages(conversation_id: str, *, limit: int) -> list[Message]:
        captured["args"] = (conversation_id, limit)
        return [_message()]

    monkeypatch.setattr(storage, "list_messages", fake_messages)

    response = await auth_client.get("/api/conversations/conv-1/messages")

    assert response.status_code == 200
    assert captured["args"] == ("conv-1", 100)
    assert response.json()[0]["isBot"] is True


async def test_send_delivers_stores_and_broadcasts(
    auth_client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
    recording_manager: RecordingManager,
) -> None:
    fake_waha = FakeWaha()
    stored_kwargs: dict[str, Any] = {}
    stored = _message(id="msg-9", content="Seu orçamento está pronto")

    async def fake_fetch(conversation_id: str) -> Conversation:
        assert conversation_id == "conv-1"
        return CONVERSATION

    async def fake_create(**kwargs: Any) -> Message:
        stored_kwargs.update(kwargs)
        return stored

    async def fake_touch(conversation_id: str) -> Conversation:
        return CONVERSATION

    monkeypatch.setattr(storage, "fetch_conversation", fake_fetch)
    monkeypatch.setattr(storage, "create_message", fake_create)
    monkeypatch.setattr(storage, "touch_conversation", fake_touch)
    monkeypatch.setattr(waha, "get_waha_client", lambda: fake_waha)

    response = await auth_client.post(
        "/api/conversations/conv-1/send",
        json={"message": "Seu orçamento está pronto", "type": "text"},
    )

    assert response.status_code == 200
    assert response.json()["id"] == "msg-9"
    assert fake_waha.sent == [("11987654321", "Seu orçamento está pronto")]
    assert stored_kwargs["metadata"] == {"manual": True, "sentBy": "operador"}
    assert stored_kwargs["external_id"] == "true_5511987654321@c.us_ABC"
    assert [event[0] for event in recording_manager.events] == [
        "message:new",
        "conversation:update",
    ]


async def test_send_rejects_empty_message(auth_client: AsyncClient) -> None:
    response = await auth_client.post("/api/conversations/conv-1/send", json={"message": "  "})

    assert response.status_code == 400


async def test_send_returns_404_for_unknown_conversation(
    auth_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def fake_fetch(_conversation_id: str) -> None:
        return None

    monkeypatch.setattr(storage, "fetch_conversation", fake_fetch)

    response = await auth_client.post("/api/conversations/nope/send", json={"message": "oi"})

    assert response.status_code == 404


async def test_send_maps_waha_failure_to_502_without_broadcast(
    auth_client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
    recording_manager: RecordingManager,
) -> None:
    async def fake_fetch(_conversation_id: str) -> Conversation:
        return CONVERSATION

    monkeypatch.setattr(storage, "fetch_conversation", fake_fetch)
    monkeypatch.setattr(waha, "get_waha_client", lambda: FakeWaha(fail=True))

    response = await auth_client.post("/api/conversations/conv-1/send", json={"message": "oi"})

    assert response.status_code == 502
    assert recording_manager.events == []
