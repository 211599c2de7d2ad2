"""Formato de los frames JSON intercambiados por `/ws`."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

PING = "ping"
PONG = "pong"
CONNECTED = "connected"
ECHO = "echo"

MESSAGE_NEW = "message:new"
CONVERSATION_NEW = "conversation:new"
CONVERSATION_UPDATE = "conversation:update"

# Tipos consumidos por el cliente; nunca llegan al callback de la aplicación.
RESERVED_TYPES = frozenset({PONG, CONNECTED})


class FrameError(ValueError):
    """Frame que no es un objeto JSON con `type` de texto."""


def to_wire(value: Any) -> Any:
    """Convierte modelos pydantic (también anidados en dicts/listas) a JSON plano."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, dict):
        return {key: to_wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    return value


def encode(event_type: str, data: Any = None) -> str:
    """Serializa un evento `{type, data}`."""
    return json.dumps({"type": event_type, "data": to_wire(data)}, ensure_ascii=False, default=str)


def decode(raw: str | bytes) -> dict[str, Any]:
    """Parsea un frame entrante y valida la forma mínima del envelope."""
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise FrameError(f"invalid JSON frame: {exc}") from exc
    if not isinstance(payload, dict):
        raise FrameError("frame must be a JSON object")
    if not isinstance(payload.get("type"), str):
        raise FrameError("frame is missing a string 'type'")
    return payload
