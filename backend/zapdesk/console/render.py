"""Representación de mensajes del chat en texto plano para la consola."""

from __future__ import annotations

from collections.abc import Iterable

from zapdesk.models.conversation import Message

BUBBLE_WIDTH = 72


def format_file_size(size: int | None) -> str:
    """Tamaño legible: B, KB o MB con un decimal; vacío para 0 o desconocido."""
    if not size:
        return ""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def visible_messages(messages: Iterable[Message]) -> list[Message]:
    """Descarta mensajes de sistema, elimina duplicados por id y ordena del más antiguo."""
    unique: dict[str, Message] = {}
    for message in messages:
        if message.message_type == "system":
            continue
        unique.setdefault(message.id, message)
    return sorted(unique.values(), key=lambda item: item.timestamp)


def _body_lines(message: Message) -> list[str]:
    media = message.media
    if media is None:
        return [message.content]
    if message.message_type == "image":
        lines = [f"[imagem] {media.url}"]
    else:
        size = format_file_size(media.size)
        label = media.filename or "Documento"
        lines = [f"[documento] {label} ({size})" if size else f"[documento] {label}"]
    caption = message.content.strip()
    # El gateway usa el nombre del archivo como contenido cuando no hay leyenda.
    if caption and caption != media.filename:
        lines.append(caption)
    return lines


def render_message(message: Message, *, width: int = BUBBLE_WIDTH) -> str:
    """Burbuja de texto: el bot a la izquierda, el lead a la derecha."""
    lines = _body_lines(message)
    lines.append(message.timestamp.strftime("%H:%M"))
    if message.is_bot:
        return "\n".join(lines)
    return "\n".join(line.rjust(width) for line in lines)
