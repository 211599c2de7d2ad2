#!/usr/bin/env python3
"""Prueba la conectividad con Postgres, WAHA y OpenAI."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import asyncpg
import httpx
from openai import AsyncOpenAI, OpenAIError

from zapdesk.services.openai import count_models

from .common import load_env_files, report

SCRIPT = "connectivity"
WAHA_TIMEOUT_SECONDS = 5.0

Check = Callable[[], Awaitable[str]]


async def check_postgres(database_url: str | None, *, connect: Callable[..., Any] = asyncpg.connect) -> str:
    """Ejecuta `SELECT 1` y cierra la conexión."""
    if not database_url:
        raise RuntimeError("DATABASE_URL no está definida")
    connection = await connect(database_url)
    try:
        value = await connection.fetchval("SELECT 1 AS ok")
    finally:
        await connection.close()
    return f"PostgreSQL responde (ok={value})"


async def check_waha(
    base_url: str | None,
    *,
    timeout: float = WAHA_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """`GET` a la raíz de WAHA; cualquier respuesta HTTP cuenta como alcanzable."""
    if not base_url:
        raise RuntimeError("WAHA_API no está definida")
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        response = await client.get(base_url)
    return f"WAHA alcanzable ({response.status_code} {response.reason_phrase})"


async def check_openai(api_key: str | None, *, client: AsyncOpenAI | None = None) -> str:
    if client is None:
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY no está definida")
        client = AsyncOpenAI(api_key=api_key)
    total = await count_models(client)
    return f"OpenAI respondió con {total} modelos"


async def run_checks(checks: dict[str, Check]) -> int:
    failures = 0
    for label, check in checks.items():
        try:
            detail = await check()
        except (
            RuntimeError,
            OSError,
            asyncpg.PostgresError,
            asyncpg.InterfaceError,
            httpx.HTTPError,
            OpenAIError,
        ) as exc:
            failures += 1
            report(SCRIPT, f"{label}: {exc}", error=True)
        else:
            report(SCRIPT, f"{label}: {detail}")
    return 1 if failures else 0


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verifica la conectividad con los servicios externos.")
    parser.add_argument(
        "--dotenv",
        help="Ruta al archivo .env a cargar antes de leer variables de entorno.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    load_env_files(args.dotenv, script=SCRIPT)

    checks: dict[str, Check] = {
        "postgres": lambda: check_postgres(os.getenv("DATABASE_URL")),
        "waha": lambda: check_waha(os.getenv("WAHA_API")),
        "openai": lambda: check_openai(os.getenv("OPENAI_API_KEY")),
    }
    return asyncio.run(run_checks(checks))


if __name__ == "__main__":
    sys.exit(main())
