"""Estado de la página de conversaciones alimentado por REST y eventos `/ws`."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from zapdesk.core.logging import get_logger
from zapdesk.models.conversation import Conversation, Message
from zapdesk.realtime import protocol

from .render import visible_messages

logger = get_logger(__name__)

_conversations_adapter = TypeAdapter(list[Conversation])
_messages_adapter = TypeAdapter(list[Message])

ChangeHandler = Callable[[str, str | None], Awaitable[None] | None]


class ConversationsView:
    """Cache de conversaciones y mensajes que se refresca ante cada evento.

    Cada evento dispara sus propios refetch; no se agrupan ni se aplican
    parches sobre la cache.
    """

    def __init__(self, http: httpx.AsyncClient, *, on_change: ChangeHandler | None = None) -> None:
        self.http = http
        self.on_change = on_change
        self.conversations: list[Conversation] = []
        self.messages: dict[str, list[Message]] = {}
        self.selected_id: str | None = None

    @property
    def selected(self) -> Conversation | None:
        return next((item for item in self.conversations if item.id == self.selected_id), None)

    def messages_for(self, conversation_id: str) -> list[Message]:
        return visible_messages(self.messages.get(conversation_id, []))

    async def refresh_conversations(self, **filters: str) -> list[Conversation]:
        try:
            response = await self.http.get("/api/conversations", params=filters or None)
            response.raise_for_status()
            self.conversations = _conversations_adapter.validate_python(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.error("console.conversations_fetch_failed", extra={"error": str(exc)})
            return self.conversations
        await self._notify("conversations", None)
        return self.conversations

    async def refresh_messages(self, conversation_id: str) -> list[Message]:
        try:
            response = await self.http.get(f"/api/conversations/{conversation_id}/messages")
            response.raise_for_status()
            self.messages[conversation_id] = _messages_adapter.validate_python(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.error(
                "console.messages_fetch_failed",
                extra={"conversation_id": conversation_id, "error": str(exc)},
            )
            return self.messages_for(conversation_id)
        await self._notify("messages", conversation_id)
        return self.messages_for(conversation_id)

    async def select(self, conversation_id: str | None) -> None:
        self.selected_id = conversation_id
        if conversation_id is not None:
            await self.refresh_messages(conversation_id)

    async def send(self, text: str) -> Message | None:
        """Envía un mensaje manual a la conversación seleccionada."""
        if self.selected_id is None or not text.strip():
            return None
        try:
            response = await self.http.post(
                f"/api/conversations/{self.selected_id}/send",
                json={"message": text, "type": "text"},
            )
            response.raise_for_status()
            return Message.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.error(
                "console.send_failed",
                extra={"conversation_id": self.selected_id, "error": str(exc)},
            )
            return None

    async def handle_event(self, frame: dict[str, Any]) -> None:
        """Callback `on_message` del cliente websocket."""
        event_type = frame.get("type")
        if event_type == protocol.MESSAGE_NEW:
            data = frame.get("data")
            conversation_id = data.get("conversationId") if isinstance(data, dict) else None
            if conversation_id and (
                conversation_id in self.messages or conversation_id == self.selected_id
            ):
                await self.refresh_messages(conversation_id)
            await self.refresh_conversations()
        elif event_type in (protocol.CONVERSATION_NEW, protocol.CONVERSATION_UPDATE):
            await self.refresh_conversations()

    async def on_reconnect(self) -> None:
        """Tras reconectar se recupera lo perdido mientras el socket estuvo caído."""
        await self.refresh_conversations()
        if self.selected_id is not None:
            await self.refresh_messages(self.selected_id)

    async def _notify(self, scope: str, conversation_id: str | None) -> None:
        if self.on_change is None:
            return
        result = self.on_change(scope, conversation_id)
        if result is not None:
            await result
