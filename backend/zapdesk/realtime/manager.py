"""Registro de conexiones websocket por usuario y difusión de eventos."""

from __future__ import annotations

from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from zapdesk.core.logging import get_logger, log_event

from . import protocol

logger = get_logger("zapdesk.realtime")


class ConnectionManager:
    """Dueño único del mapa `user_id -> sockets abiertos`."""

    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = {}

    def add(self, user_id: str, websocket: WebSocket) -> None:
        connections = self._connections.setdefault(user_id, set())
        connections.add(websocket)
        logger.info(
            "ws.user_connected",
            extra={"user_id": user_id, "user_connections": len(connections)},
        )

    def remove(self, user_id: str, websocket: WebSocket) -> None:
        connections = self._connections.get(user_id)
        if not connections:
            return
        connections.discard(websocket)
        if not connections:
            del self._connections[user_id]
        logger.info(
            "ws.user_disconnected",
            extra={"user_id": user_id, "user_connections": len(connections)},
        )

    async def send(self, websocket: WebSocket, event_type: str, data: Any = None) -> bool:
        """Envía un frame si el socket sigue abierto; fallas se registran y no se propagan."""
        if websocket.application_state != WebSocketState.CONNECTED:
            return False
        try:
            await websocket.send_text(protocol.encode(event_type, data))
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            logger.warning("ws.send_failed", extra={"type": event_type, "error": str(exc)})
            return False
        return True

    async def broadcast_to_all(self, event_type: str, data: Any = None) -> int:
        sent = 0
        for connections in list(self._connections.values()):
            for websocket in list(connections):
                if await self.send(websocket, event_type, data):
                    sent += 1
        log_event(logger, "ws.broadcast", type=event_type, clients=sent)
        return sent

    async def broadcast_to_user(self, user_id: str, event_type: str, data: Any = None) -> int:
        sent = 0
        for websocket in list(self._connections.get(user_id, ())):
            if await self.send(websocket, event_type, data):
                sent += 1
        return sent

    async def broadcast_new_message(self, conversation_id: str, message: Any) -> int:
        return await self.broadcast_to_all(
            protocol.MESSAGE_NEW, {"conversationId": conversation_id, "message": message}
        )

    async def broadcast_conversation_update(self, conversation_id: str, conversation: Any) -> int:
        return await self.broadcast_to_all(
            protocol.CONVERSATION_UPDATE,
            {"conversationId": conversation_id, "conversation": conversation},
        )

    async def broadcast_new_conversation(self, conversation: Any) -> int:
        return await self.broadcast_to_all(protocol.CONVERSATION_NEW, {"conversation": conversation})

    def stats(self) -> dict[str, Any]:
        return {
            "totalUsers": len(self._connections),
            "totalConnections": sum(len(items) for items in self._connections.values()),
            "users": sorted(self._connections),
        }


manager = ConnectionManager()
