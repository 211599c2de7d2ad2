"""Pruebas del registro de conexiones y la difusión de eventos."""

import json
from datetime import datetime, timezone

from starlette.websockets import WebSocketDisconnect, WebSocketState

from zapdesk.models.conversation import Message
from zapdesk.realtime.manager import ConnectionManager


class FakeWebSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.broken = broken
        self.sent: list[dict] = []

    async def send_text(self, text: str) -> None:
        if self.broken:
            raise WebSocketDisconnect(code=1006)
        self.sent.append(json.loads(text))


async def test_broadcast_reaches_every_open_socket() -> None:
    registry = ConnectionManager()
    first, second, closed = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
    closed.application_state = WebSocketState.DISCONNECTED
    registry.add("ana", first)
    registry.add("ana", second)
    registry.add("bruno", closed)

    sent = await registry.broadcast_to_all("conversation:new", {"conversation": {"id": "c1"}})

    assert sent == 2
    assert first.sent == [{"type": "conversation:new", "data": {"conversation": {"id": "c1"}}}]
    assert closed.sent == []


async def test_broadcast_to_user_skips_failed_sockets() -> None:
    registry = ConnectionManager()
    healthy, broken = FakeWebSocket(), FakeWebSocket(broken=True)
    registry.add("ana", healthy)
    registry.add("ana", broken)
    registry.add("bruno", FakeWebSocket())

    assert await registry.broadcast_to_user("ana", "echo", "oi") == 1
    assert await registry.broadcast_to_user("carla", "echo", "oi") == 0


async def test_new_message_payload_uses_camel_case() -> None:
    registry = ConnectionManager()
    socket = FakeWebSocket()
    registry.add("ana", socket)
    message = Message(
        id="m1",
        conversation_id="c1",
        content="Olá",
        is_bot=False,
        timestamp=datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc),
    )

    await registry.broadcast_new_message("c1", message)

    frame = socket.sent[0]
    assert frame["type"] == "message:new"
    assert frame["data"]["conversationId"] == "c1"
    assert frame["data"]["message"]["conversationId"] == "c1"
    assert frame["data"]["message"]["isBot"] is False


def test_remove_drops_empty_users() -> None:
    registry = ConnectionManager()
    socket = FakeWebSocket()
    registry.add("ana", socket)

    registry.remove("ana", socket)
    registry.remove("ana", socket)

    assert registry.stats() == {"totalUsers": 0, "totalConnections": 0, "users": []}
