#!/usr/bin/env python3
"""Configura el webhook de la sesión WAHA y muestra la configuración resultante."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Sequence
from typing import Any

from zapdesk.core.security import mask_secret
from zapdesk.services.waha import WahaClient, WahaError

from .common import load_env_files, report

SCRIPT = "waha_webhook"


def _webhooks(session: dict[str, Any]) -> list[dict[str, Any]]:
    config = session.get("config") or {}
    webhooks = config.get("webhooks") if isinstance(config, dict) else None
    return webhooks if isinstance(webhooks, list) else []


def _masked(webhooks: list[dict[str, Any]]) -> list[dict[str, Any]]:
    masked = []
    for hook in webhooks:
        headers = [
            {**header, "value": mask_secret(header.get("value"))}
            for header in hook.get("customHeaders") or []
        ]
        masked.append({**hook, "customHeaders": headers})
    return masked


async def configure(client: WahaClient, webhook_url: str) -> list[dict[str, Any]]:
    """Busca la sesión, reemplaza su webhook y retorna los webhooks verificados."""
    session = await client.get_session()
    report(SCRIPT, f"Sesión {client.session} encontrada (status={session.get('status', 'desconocido')}).")

    await client.configure_webhook(webhook_url)
    report(SCRIPT, f"Webhook configurado hacia {webhook_url}.")

    verified = _webhooks(await client.get_session())
    if not any(hook.get("url") == webhook_url for hook in verified):
        raise WahaError("La sesión no reporta el webhook recién configurado")
    return verified


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Registra el webhook de ZapDesk en la sesión WAHA.")
    parser.add_argument("--webhook-url", help="URL destino. Por defecto WEBHOOK_URL.")
    parser.add_argument("--session", help="Nombre de la sesión. Por defecto WAHA_INSTANCIA.")
    parser.add_argument(
        "--dotenv",
        help="Ruta al archivo .env a cargar antes de leer variables de entorno.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    load_env_files(args.dotenv, script=SCRIPT)

    base_url = os.getenv("WAHA_API")
    api_key = os.getenv("WAHA_API_KEY")
    session_name = args.session or os.getenv("WAHA_INSTANCIA")
    webhook_url = args.webhook_url or os.getenv("WEBHOOK_URL")
    missing = [
        name
        for name, value in (
            ("WAHA_API", base_url),
            ("WAHA_API_KEY", api_key),
            ("WAHA_INSTANCIA", session_name),
            ("WEBHOOK_URL", webhook_url),
        )
        if not value
    ]
    if missing:
        report(SCRIPT, f"Variables faltantes: {', '.join(missing)}", error=True)
        return 1

    client = WahaClient(base_url=base_url, api_key=api_key, session=session_name)
    report(SCRIPT, f"Usando {client.base_url} (api key {mask_secret(api_key)}).")
    try:
        webhooks = asyncio.run(configure(client, webhook_url))
    except WahaError as exc:
        if exc.status_code == 404:
            report(SCRIPT, f"La sesión {session_name} no existe en WAHA.", error=True)
        else:
            report(SCRIPT, f"No fue posible configurar el webhook: {exc}", error=True)
        return 1

    report(SCRIPT, "Webhooks verificados:")
    print(json.dumps(_masked(webhooks), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
