"""Endpoint `/ws` de eventos en tiempo real para la consola."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from zapdesk.api.deps import session_from_mapping
from zapdesk.core.logging import get_logger

from . import protocol
from .manager import manager

router = APIRouter(tags=["realtime"])

logger = get_logger("zapdesk.realtime")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    """Autentica por cookie de sesión y atiende `ping`/`echo` hasta el cierre."""
    session = session_from_mapping(websocket.session)
    await websocket.accept()
    if not session.is_authenticated or session.user is None:
        logger.info("ws.auth_rejected")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication required")
        return

    user_id = session.user.username
    manager.add(user_id, websocket)
    await manager.send(
        websocket,
        protocol.CONNECTED,
        {"message": "WebSocket connection established", "userId": user_id, "timestamp": _now()},
    )

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            try:
                frame = protocol.decode(raw)
            except protocol.FrameError as exc:
                logger.warning("ws.invalid_frame", extra={"user_id": user_id, "error": str(exc)})
                continue

            if frame["type"] == protocol.PING:
                await manager.send(websocket, protocol.PONG, {"timestamp": _now()})
            elif frame["type"] == protocol.ECHO:
                await manager.send(websocket, protocol.ECHO, frame.get("data"))
    except WebSocketDisconnect as exc:
        logger.info("ws.closed", extra={"user_id": user_id, "code": exc.code})
    finally:
        manager.remove(user_id, websocket)
