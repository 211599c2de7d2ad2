"""Rutas de conversaciones: listado, historial y envío manual por WhatsApp."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from zapdesk.api.deps import require_auth
from zapdesk.core.logging import get_logger
from zapdesk.models.conversation import Conversation, Message, SendMessageRequest
from zapdesk.models.session import AuthSession
from zapdesk.realtime.manager import manager
from zapdesk.services import storage, waha

router = APIRouter(prefix="/conversations", tags=["conversations"])

logger = get_logger(__name__)


def _upstream_error(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


def _external_id(result: dict[str, Any]) -> str | None:
    value = result.get("id")
    if isinstance(value, dict):
        value = value.get("_serialized")
    return value if isinstance(value, str) else None


@router.get("", response_model=list[Conversation], summary="Lista conversaciones con su lead")
async def list_conversations(
    status_filter: str | None = Query(default=None, alias="status"),
    lead_id: str | None = Query(default=None, alias="leadId"),
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    date_to: datetime | None = Query(default=None, alias="dateTo"),
    _: AuthSession = Depends(require_auth),
) -> list[Conversation]:
    try:
        return await storage.list_conversations(
            status=status_filter, lead_id=lead_id, date_from=date_from, date_to=date_to
        )
    except storage.StorageError as exc:
        raise _upstream_error(exc) from exc


@router.get(
    "/{conversation_id}/messages",
    response_model=list[Message],
    summary="Mensajes recientes de una conversación",
)
async def list_messages(
    conversation_id: str,
    limit: int = Query(100, ge=1, le=500),
    _: AuthSession = Depends(require_auth),
) -> list[Message]:
    try:
        return await storage.list_messages(conversation_id, limit=limit)
    except storage.StorageError as exc:
        raise _upstream_error(exc) from exc


@router.post(
    "/{conversation_id}/send",
    response_model=Message,
    summary="Envía un mensaje manual al lead por WhatsApp",
)
async def send_message(
    conversation_id: str,
    payload: SendMessageRequest,
    session: AuthSession = Depends(require_auth),
) -> Message:
    if not payload.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")
    if payload.type != "text":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported message type")

    try:
        conversation = await storage.fetch_conversation(conversation_id)
        if conversation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
        lead = conversation.lead or await storage.fetch_lead(conversation.lead_id)
        if lead is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")

        result = await waha.get_waha_client().send_text(lead.whatsapp_phone, payload.message)
        sent_by = payload.user_id or (session.user.username if session.user else "agent")
        stored = await storage.create_message(
            conversation_id=conversation_id,
            content=payload.message,
            is_bot=True,
            message_type="text",
            metadata={"manual": True, "sentBy": sent_by},
            external_id=_external_id(result),
        )
        updated = await storage.touch_conversation(conversation_id)
    except (storage.StorageError, waha.WahaError) as exc:
        logger.error(
            "conversations.send_failed",
            extra={"conversation_id": conversation_id, "error": str(exc)},
        )
        raise _upstream_error(exc) from exc

    await manager.broadcast_new_message(conversation_id, stored)
    if updated is not None:
        await manager.broadcast_conversation_update(conversation_id, updated)
    return stored
