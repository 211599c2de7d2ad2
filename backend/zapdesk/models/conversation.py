"""Modelos de exhibición para leads, conversaciones y mensajes."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

ConversationStatus = Literal["active", "waiting", "closed", "transferred"]
LeadStatus = Literal[
    "novo",
    "em_atendimento",
    "aguardando_documentos",
    "encaminhado",
    "transferido_humano",
    "concluido",
    "cancelado",
]
Priority = Literal["baixa", "normal", "alta", "urgente"]

MEDIA_MESSAGE_TYPES = frozenset({"image", "document"})


class CamelModel(BaseModel):
    """Base con alias camelCase en el wire y snake_case en Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Lead(CamelModel):
    """Subconjunto del lead que muestra la consola."""

    id: str
    protocol: str
    name: str | None = None
    whatsapp_name: str | None = None
    whatsapp_phone: str
    status: LeadStatus = "novo"
    priority: Priority = "normal"

    @property
    def display_name(self) -> str:
        return self.name or self.whatsapp_name or self.whatsapp_phone


class Conversation(CamelModel):
    """Conversación de WhatsApp asociada a un lead."""

    id: str
    lead_id: str
    protocol: str
    status: ConversationStatus = "active"
    current_menu: str | None = None
    current_step: str | None = None
    waiting_for: str | None = None
    started_at: datetime
    ended_at: datetime | None = None
    last_activity: datetime
    lead: Lead | None = None


class MediaInfo(CamelModel):
    """Archivo adjunto de un mensaje de imagen o documento."""

    url: str
    filename: str | None = None
    size: int | None = None
    mime_type: str | None = None


class Message(CamelModel):
    """Mensaje mostrado en el chat; `media` existe sólo para imágenes y documentos."""

    id: str
    conversation_id: str
    content: str
    is_bot: bool = False
    message_type: str = "text"
    timestamp: datetime
    status: str | None = "sent"
    metadata: dict[str, Any] | None = None
    media: MediaInfo | None = None

    @model_validator(mode="before")
    @classmethod
    def _media_from_metadata(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        # La columna admite NULL; esas filas son mensajes de texto.
        for key in ("message_type", "messageType"):
            if key in data and data[key] is None:
                data = {**data, key: "text"}
        message_type = data.get("message_type", data.get("messageType"))
        if message_type not in MEDIA_MESSAGE_TYPES or data.get("media") is not None:
            return data
        metadata = data.get("metadata")
        if not isinstance(metadata, dict):
            return data
        url = metadata.get("fileUrl") or metadata.get("mediaUrl")
        if not url:
            return data
        return {
            **data,
            "media": {
                "url": url,
                "filename": metadata.get("filename"),
                "size": metadata.get("size"),
                "mime_type": metadata.get("mimeType"),
            },
        }

    @model_validator(mode="after")
    def _check_media_matches_type(self) -> Message:
        is_media = self.message_type in MEDIA_MESSAGE_TYPES
        if is_media and self.media is None:
            raise ValueError(f"message of type {self.message_type!r} requires media")
        if not is_media and self.media is not None:
            raise ValueError(f"message of type {self.message_type!r} cannot carry media")
        return self


class SendMessageRequest(BaseModel):
    """Payload de POST /conversations/{id}/send."""

    message: str = Field(default="", description="Texto a enviar por WhatsApp.")
    type: str = Field(default="text", description="Tipo de mensaje; sólo `text` es soportado.")
    user_id: str | None = Field(
        default=None,
        validation_alias="userId",
        description="Agente que envía el mensaje manual.",
    )
