"""Pruebas del acceso a Supabase con respuestas PostgREST simuladas."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from zapdesk.core.config import settings
from zapdesk.services import storage

CONVERSATION_ROW = {
    "id": "c1",
    "lead_id": "l1",
    "protocol": "ZAP-0001",
    "status": "active",
    "started_at": "2024-05-10T14:00:00+00:00",
    "ended_at": None,
    "last_activity": "2024-05-10T14:30:00+00:00",
    "lead": {
        "id": "l1",
        "protocol": "ZAP-0001",
        "name": "Maria",
        "whatsapp_name": None,
        "whatsapp_phone": "11987654321",
        "status": "novo",
        "priority": "alta",
    },
}


class FakeSupabase:
    """PostgREST mínimo: respuestas por `METHOD /ruta` y registro de solicitudes."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, httpx.Response] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.get(f"{request.method} {request.url.path}", httpx.Response(200, json=[]))


@pytest.fixture(name="supabase")
def fixture_supabase(monkeypatch: pytest.MonkeyPatch) -> FakeSupabase:
    fake = FakeSupabase()
    monkeypatch.setattr(settings, "supabase_url", "https://proj.supabase.co/")
    monkeypatch.setattr(settings, "supabase_service_role", "service-role")
    monkeypatch.setattr(
        storage,
        "_http_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(fake)),
    )
    return fake


async def test_list_conversations_embeds_lead_and_applies_filters(supabase: FakeSupabase) -> None:
    supabase.responses["GET /rest/v1/conversations"] = httpx.Response(200, json=[CONVERSATION_ROW])

    conversations = await storage.list_conversations(
        status="active",
        lead_id="l1",
        date_to=datetime(2024, 5, 31, tzinfo=timezone.utc),
    )

    assert conversations[0].lead is not None
    assert conversations[0].lead.priority == "alta"
    request = supabase.requests[0]
    assert request.url.host == "proj.supabase.co"
    assert request.headers["apikey"] == "service-role"
    assert request.headers["Authorization"] == "Bearer service-role"
    params = request.url.params
    assert params["order"] == "last_activity.desc"
    assert params["status"] == "eq.active"
    assert params["lead_id"] == "eq.l1"
    assert params["started_at"] == "lte.2024-05-31T00:00:00+00:00"
    assert "lead:leads(" in params["select"]


async def test_list_messages_orders_newest_first_and_skips_bad_rows(supabase: FakeSupabase) -> None:
    supabase.responses["GET /rest/v1/messages"] = httpx.Response(
        200,
        json=[
            {
                "id": "m2",
                "conversation_id": "c1",
                "content": "foto.jpg",
                "is_bot": False,
                "message_type": "image",
                "timestamp": "2024-05-10T14:31:00+00:00",
                "metadata": {"fileUrl": "https://cdn.example.com/foto.jpg", "mimeType": "image/jpeg"},
            },
            {
                "id": "m1",
                "conversation_id": "c1",
                "content": "sem arquivo",
                "is_bot": False,
                "message_type": "document",
                "timestamp": "2024-05-10T14:30:00+00:00",
                "metadata": {},
            },
        ],
    )

    messages = await storage.list_messages("c1")

    assert [message.id for message in messages] == ["m2"]
    assert messages[0].media is not None
    assert messages[0].media.mime_type == "image/jpeg"
    params = supabase.requests[0].url.params
    assert params["order"] == "timestamp.desc"
    assert params["limit"] == "100"


async def test_create_message_requests_representation(supabase: FakeSupabase) -> None:
    supabase.responses["POST /rest/v1/messages"] = httpx.Response(
        201,
        json=[
            {
                "id": "m9",
                "conversation_id": "c1",
                "content": "Olá",
                "is_bot": True,
                "message_type": "text",
                "timestamp": "2024-05-10T14:40:00+00:00",
                "metadata": {"manual": True, "sentBy": "ana"},
            }
        ],
    )

    message = await storage.create_message(
        conversation_id="c1",
        content="Olá",
        is_bot=True,
        metadata={"manual": True, "sentBy": "ana"},
        external_id="wamid-1",
    )

    assert message.id == "m9"
    request = supabase.requests[0]
    assert request.headers["Prefer"] == "return=representation"
    body = json.loads(request.content)
    assert body["evolution_message_id"] == "wamid-1"
    assert body["metadata"] == {"manual": True, "sentBy": "ana"}


async def test_fetch_returns_none_when_missing(supabase: FakeSupabase) -> None:
    assert await storage.fetch_conversation("nope") is None
    assert await storage.fetch_lead("nope") is None


async def test_http_errors_raise_storage_error(supabase: FakeSupabase) -> None:
    supabase.responses["GET /rest/v1/conversations"] = httpx.Response(503, text="unavailable")

    with pytest.raises(storage.StorageError):
        await storage.list_conversations()


async def test_unconfigured_supabase_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "supabase_url", None)

    with pytest.raises(storage.StorageError):
        await storage.fetch_lead("l1")


async def test_null_message_type_is_treated_as_text(supabase: FakeSupabase) -> None:
    supabase.responses["GET /rest/v1/messages"] = httpx.Response(
        200,
        json=[
            {
                "id": "m1",
                "conversation_id": "c1",
                "content": "Bom dia",
                "is_bot": False,
                "message_type": None,
                "timestamp": "2024-05-10T14:30:00+00:00",
                "metadata": None,
            }
        ],
    )

    messages = await storage.list_messages("c1")

    assert [message.id for message in messages] == ["m1"]
    assert messages[0].message_type == "text"
    assert messages[0].media is None


async def test_list_conversations_skips_invalid_rows(supabase: FakeSupabase) -> None:
    broken = {**CONVERSATION_ROW, "id": "c2", "started_at": None}
    supabase.responses["GET /rest/v1/conversations"] = httpx.Response(
        200, json=[CONVERSATION_ROW, broken]
    )

    conversations = await storage.list_conversations()

    assert [conversation.id for conversation in conversations] == ["c1"]


async def test_invalid_single_row_raises_storage_error(supabase: FakeSupabase) -> None:
    supabase.responses["GET /rest/v1/leads"] = httpx.Response(200, json=[{"id": "l1"}])

    with pytest.raises(storage.StorageError):
        await storage.fetch_lead("l1")
