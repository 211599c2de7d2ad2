#!/usr/bin/env python3
"""Verifica que las variables de entorno requeridas por ZapDesk estén definidas."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence

from .common import load_env_files, report

SCRIPT = "env_check"

REQUIRED_VARIABLES: tuple[str, ...] = (
    "SESSION_SECRET",
    "DATABASE_URL",
    "WAHA_API",
    "WAHA_API_KEY",
    "LOGIN",
    "SENHA",
    "OPENAI_API_KEY",
)


def missing_variables(environ: dict[str, str] | None = None) -> list[str]:
    """Variables requeridas ausentes o vacías, en el orden declarado."""
    source = os.environ if environ is None else environ
    return [name for name in REQUIRED_VARIABLES if not source.get(name)]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Revisa las variables de entorno obligatorias.")
    parser.add_argument(
        "--dotenv",
        help="Ruta al archivo .env a cargar antes de leer variables de entorno.",
    )
    parser.add_argument(
        "--no-dotenv",
        action="store_true",
        help="Sólo lee el entorno del proceso, sin cargar archivos .env.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if not args.no_dotenv:
        load_env_files(args.dotenv, script=SCRIPT)

    missing = set(missing_variables())
    for name in REQUIRED_VARIABLES:
        if name in missing:
            report(SCRIPT, f"{name} no está definida.", error=True)
        else:
            report(SCRIPT, f"{name} definida.")

    if missing:
        report(SCRIPT, f"Variables de entorno incompletas: faltan {len(missing)} de {len(REQUIRED_VARIABLES)}.")
        return 1
    report(SCRIPT, "Todas las variables requeridas están definidas.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
