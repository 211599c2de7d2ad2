#!/usr/bin/env python3
"""Comprueba que los puertos del backend estén libres antes de arrancar."""

from __future__ import annotations

import argparse
import socket
import sys
from collections.abc import Sequence

from .common import report

SCRIPT = "port_check"
DEFAULT_PORTS: tuple[int, ...] = (3000, 5000)
DEFAULT_HOST = "0.0.0.0"


def is_port_available(port: int, host: str = DEFAULT_HOST) -> bool:
    """Intenta hacer bind del puerto; el socket se libera de inmediato."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        try:
            probe.bind((host, port))
        except OSError:
            return False
    return True


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verifica la disponibilidad de puertos TCP.")
    parser.add_argument(
        "ports",
        nargs="*",
        type=int,
        default=list(DEFAULT_PORTS),
        help="Puertos a revisar (default: 3000 5000).",
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help="Interfaz a usar (default: 0.0.0.0).")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    busy = 0
    for port in args.ports:
        if is_port_available(port, args.host):
            report(SCRIPT, f"Puerto {port} disponible.")
        else:
            busy += 1
            report(SCRIPT, f"Puerto {port} no disponible.", error=True)
    return 1 if busy else 0


if __name__ == "__main__":
    sys.exit(main())
