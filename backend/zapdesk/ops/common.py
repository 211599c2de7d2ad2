"""Utilidades compartidas por los scripts operativos."""

from __future__ import annotations

import sys
from pathlib import Path
from urllib.parse import ParseResult, urlparse, urlunparse

from dotenv import load_dotenv


def load_env_files(dotenv_path: str | None = None, *, script: str = "zapdesk") -> bool:
    """Carga `.env` explícito o, en su defecto, `.env` y `backend/.env` si existen.

    Retorna False cuando el archivo pedido explícitamente no existe.
    """
    if dotenv_path:
        dotenv_file = Path(dotenv_path)
        if not dotenv_file.is_file():
            report(
                script,
                f"No se encontró el archivo {dotenv_path}; se usa sólo el entorno del proceso.",
                error=True,
            )
            return False
        load_dotenv(dotenv_file)
        return True
    for candidate in (Path(".env"), Path("backend/.env")):
        if candidate.exists():
            load_dotenv(candidate)
    return True


def mask_database_url(url: str) -> str:
    """Regresa la URL de la base sin exponer la contraseña."""

    parsed = urlparse(url)
    if not parsed.hostname:
        return url

    username = parsed.username or ""
    port = f":{parsed.port}" if parsed.port else ""
    userinfo = f"{username}@" if username else ""
    masked: ParseResult = parsed._replace(netloc=f"{userinfo}{parsed.hostname}{port}")
    return urlunparse(masked)


def report(script: str, message: str, *, error: bool = False) -> None:
    """Imprime con el prefijo `[script]`; los errores van a stderr."""
    stream = sys.stderr if error else sys.stdout
    prefix = f"[{script}] ERROR: " if error else f"[{script}] "
    print(f"{prefix}{message}", file=stream)
