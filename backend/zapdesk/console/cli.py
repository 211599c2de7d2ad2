#!/usr/bin/env python3
"""Consola de atención: muestra conversaciones y mensajes en tiempo real."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Sequence

from zapdesk.client.auth import AuthClient
from zapdesk.client.websocket import ConnectionState, ReconnectingWebSocket, websocket_url
from zapdesk.core.config import settings
from zapdesk.core.logging import configure_logging, resolve_log_level
from zapdesk.ops.common import load_env_files

from .conversations import ConversationsView
from .render import render_message

SESSION_COOKIE = "zapdesk.sid"


def status_badge(state: ConnectionState) -> str:
    return "● Online" if state is ConnectionState.OPEN else "○ Offline"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Consola de conversaciones de WhatsApp.")
    parser.add_argument(
        "--base-url",
        default=os.getenv("ZAPDESK_URL", "http://localhost:5000"),
        help="URL del backend (default: ZAPDESK_URL o http://localhost:5000).",
    )
    parser.add_argument("--username", help="Usuario del panel. Por defecto LOGIN.")
    parser.add_argument("--password", help="Contraseña del panel. Por defecto SENHA.")
    parser.add_argument("--conversation", help="Id de la conversación a seguir.")
    parser.add_argument("--dotenv", help="Ruta al archivo .env a cargar.")
    parser.add_argument("--log-level", default="WARNING", help="Nivel de logs (default: WARNING).")
    return parser.parse_args(argv)


class ConsolePrinter:
    """Imprime la lista, el chat seleccionado y el estado del socket."""

    def __init__(self, view: ConversationsView) -> None:
        self.view = view
        self.state: ConnectionState | None = None

    def show_state(self, state: ConnectionState) -> None:
        if state is self.state:
            return
        self.state = state
        print(f"[console] {status_badge(state)}")

    def on_change(self, scope: str, conversation_id: str | None) -> None:
        if scope == "conversations":
            print(f"[console] {len(self.view.conversations)} conversaciones")
            for conversation in self.view.conversations:
                name = conversation.lead.display_name if conversation.lead else conversation.lead_id
                marker = "*" if conversation.id == self.view.selected_id else " "
                print(f" {marker} {conversation.protocol}  {name}  [{conversation.status}]")
        elif conversation_id == self.view.selected_id and conversation_id is not None:
            print(f"[console] --- conversación {conversation_id} ---")
            for message in self.view.messages_for(conversation_id):
                print(render_message(message))
                print()


async def run(args: argparse.Namespace) -> int:
    username = args.username or os.getenv("LOGIN")
    password = args.password or os.getenv("SENHA")
    if not username or not password:
        print("[console] ERROR: Faltan credenciales. Usa --username/--password o LOGIN/SENHA.", file=sys.stderr)
        return 1

    async with AuthClient(args.base_url) as auth:
        session = await auth.sign_in(username, password)
        if not session.is_authenticated:
            print("[console] ERROR: Credenciales inválidas o backend no disponible.", file=sys.stderr)
            return 1
        print(f"[console] Sesión iniciada como {session.user.username if session.user else username}")

        view = ConversationsView(auth.http)
        printer = ConsolePrinter(view)
        view.on_change = printer.on_change

        headers = {}
        cookie = auth.http.cookies.get(SESSION_COOKIE)
        if cookie:
            headers["Cookie"] = f"{SESSION_COOKIE}={cookie}"

        socket = ReconnectingWebSocket(
            websocket_url(args.base_url),
            on_message=view.handle_event,
            on_reconnect=view.on_reconnect,
            headers=headers,
            heartbeat_interval=settings.ws_heartbeat_seconds,
        )
        await view.refresh_conversations()
        if args.conversation:
            await view.select(args.conversation)

        printer.show_state(socket.state)
        async with socket:
            try:
                while True:
                    printer.show_state(socket.state)
                    await asyncio.sleep(1)
            finally:
                await auth.logout()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    load_env_files(args.dotenv, script="console")
    configure_logging(level=resolve_log_level(args.log_level))
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("[console] Sesión finalizada.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
