"""Acceso a conversaciones, leads y mensajes vía Supabase REST (PostgREST)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from zapdesk.core.config import settings
from zapdesk.core.logging import get_logger
from zapdesk.models.conversation import Conversation, Lead, Message

logger = get_logger(__name__)

LEAD_COLUMNS = "id,protocol,name,whatsapp_name,whatsapp_phone,status,priority"
CONVERSATION_COLUMNS = (
    "id,lead_id,protocol,status,current_menu,current_step,waiting_for,"
    "started_at,ended_at,last_activity"
)
MESSAGE_COLUMNS = "id,conversation_id,content,is_bot,message_type,timestamp,status,metadata"

Params = dict[str, str] | list[tuple[str, str]]
ModelT = TypeVar("ModelT", bound=BaseModel)


class StorageError(RuntimeError):
    """Errores de persistencia contra Supabase."""


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_seconds)


def _base_url() -> str:
    if not settings.supabase_url or not settings.supabase_service_role:
        raise StorageError("Supabase no está configurado (SUPABASE_URL/SERVICE_ROLE)")
    return settings.supabase_url.rstrip("/")


def _headers(*, prefer: str | None = None, has_body: bool = False) -> dict[str, str]:
    headers = {
        "apikey": settings.supabase_service_role or "",
        "Authorization": f"Bearer {settings.supabase_service_role}",
        "Accept": "application/json",
    }
    if has_body:
        headers["Content-Type"] = "application/json"
    if prefer:
        headers["Prefer"] = prefer
    return headers


async def _request(
    method: str,
    path: str,
    *,
    params: Params | None = None,
    json: Any = None,
    prefer: str | None = None,
) -> list[dict[str, Any]]:
    url = f"{_base_url()}{path}"
    headers = _headers(prefer=prefer, has_body=json is not None)
    try:
        async with _http_client() as client:
            response = await client.request(method, url, params=params, json=json, headers=headers)
    except httpx.RequestError as exc:
        logger.exception("supabase.request_failed", extra={"path": path, "error": str(exc)})
        raise StorageError(f"Error de red al consultar Supabase: {exc}") from exc

    if response.status_code >= 400:
        logger.error(
            "supabase.response_error",
            extra={"path": path, "status": response.status_code, "body": response.text},
        )
        raise StorageError(
            f"Supabase respondió error (status={response.status_code}, body={response.text!r})"
        )

    if not response.content:
        return []
    payload = response.json()
    if not isinstance(payload, list):
        raise StorageError(f"Respuesta inesperada de Supabase en {path}: {payload!r}")
    return [row for row in payload if isinstance(row, dict)]


def _parse_messages(rows: list[dict[str, Any]]) -> list[Message]:
    messages: list[Message] = []
    for row in rows:
        try:
            messages.append(Message.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "messages.invalid_row",
                extra={"message_id": row.get("id"), "error": str(exc)},
            )
    return messages


def _parse_conversations(rows: list[dict[str, Any]]) -> list[Conversation]:
    conversations: list[Conversation] = []
    for row in rows:
        try:
            conversations.append(Conversation.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "conversations.invalid_row",
                extra={"conversation_id": row.get("id"), "error": str(exc)},
            )
    return conversations


def _validate_row(model: type[ModelT], row: dict[str, Any]) -> ModelT:
    try:
        return model.model_validate(row)
    except ValidationError as exc:
        raise StorageError(f"Fila inválida de Supabase para {model.__name__}: {exc}") from exc


async def list_conversations(
    *,
    status: str | None = None,
    lead_id: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[Conversation]:
    """Lista conversaciones por última actividad, con el lead embebido."""
    params: list[tuple[str, str]] = [
        ("select", f"{CONVERSATION_COLUMNS},lead:leads({LEAD_COLUMNS})"),
        ("order", "last_activity.desc"),
    ]
    if status:
        params.append(("status", f"eq.{status}"))
    if lead_id:
        params.append(("lead_id", f"eq.{lead_id}"))
    if date_from:
        params.append(("started_at", f"gte.{date_from.isoformat()}"))
    if date_to:
        params.append(("started_at", f"lte.{date_to.isoformat()}"))

    rows = await _request("GET", "/rest/v1/conversations", params=params)
    return _parse_conversations(rows)


async def fetch_conversation(conversation_id: str) -> Conversation | None:
    params = {
        "select": f"{CONVERSATION_COLUMNS},lead:leads({LEAD_COLUMNS})",
        "id": f"eq.{conversation_id}",
        "limit": "1",
    }
    rows = await _request("GET", "/rest/v1/conversations", params=params)
    return _validate_row(Conversation, rows[0]) if rows else None


async def fetch_lead(lead_id: str) -> Lead | None:
    params = {"select": LEAD_COLUMNS, "id": f"eq.{lead_id}", "limit": "1"}
    rows = await _request("GET", "/rest/v1/leads", params=params)
    return _validate_row(Lead, rows[0]) if rows else None


async def list_messages(conversation_id: str, *, limit: int = 100) -> list[Message]:
    """Mensajes más recientes primero; filas inconsistentes se descartan con aviso."""
    params = {
        "select": MESSAGE_COLUMNS,
        "conversation_id": f"eq.{conversation_id}",
        "order": "timestamp.desc",
        "limit": str(limit),
    }
    rows = await _request("GET", "/rest/v1/messages", params=params)
    return _parse_messages(rows)


async def create_message(
    *,
    conversation_id: str,
    content: str,
    is_bot: bool,
    message_type: str = "text",
    metadata: dict[str, Any] | None = None,
    status: str = "sent",
    external_id: str | None = None,
) -> Message:
    """Inserta un mensaje y retorna la fila persistida."""
    payload: dict[str, Any] = {
        "conversation_id": conversation_id,
        "content": content,
        "is_bot": is_bot,
        "message_type": message_type,
        "metadata": metadata or {},
        "status": status,
    }
    if external_id:
        payload["evolution_message_id"] = external_id
    rows = await _request(
        "POST",
        "/rest/v1/messages",
        params={"select": MESSAGE_COLUMNS},
        json=payload,
        prefer="return=representation",
    )
    if not rows:
        raise StorageError("Supabase no retornó el mensaje insertado")
    return _validate_row(Message, rows[0])


async def touch_conversation(conversation_id: str) -> Conversation | None:
    """Actualiza `last_activity` y retorna la conversación resultante."""
    rows = await _request(
        "PATCH",
        "/rest/v1/conversations",
        params={
            "id": f"eq.{conversation_id}",
            "select": f"{CONVERSATION_COLUMNS},lead:leads({LEAD_COLUMNS})",
        },
        json={"last_activity": datetime.now(timezone.utc).isoformat()},
        prefer="return=representation",
    )
    return _validate_row(Conversation, rows[0]) if rows else None
