#!/usr/bin/env python3
"""Inspecciona la base de Supabase: enums, conteos, índices y llaves foráneas."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections import Counter
from collections.abc import Callable, Sequence
from typing import Any

import asyncpg

from .common import load_env_files, mask_database_url, report

SCRIPT = "verify_db"

TABLES: tuple[str, ...] = (
    "users",
    "system_settings",
    "leads",
    "conversations",
    "messages",
    "chatbot_states",
    "documents",
    "vehicles",
    "quotes",
    "audit_logs",
    "workflow_templates",
    "workflow_versions",
    "workflow_transitions",
)

ENUMS_QUERY = """
    SELECT t.typname AS enum_name,
           string_agg(e.enumlabel, ', ' ORDER BY e.enumsortorder) AS labels
    FROM pg_type t
    JOIN pg_enum e ON t.oid = e.enumtypid
    WHERE t.typtype = 'e'
    GROUP BY t.typname
    ORDER BY t.typname
"""

INDEXES_QUERY = """
    SELECT tablename, indexname
    FROM pg_indexes
    WHERE schemaname = 'public'
      AND indexname NOT LIKE '%_pkey'
    ORDER BY tablename, indexname
"""

FOREIGN_KEYS_QUERY = """
    SELECT tc.table_name, kcu.column_name,
           ccu.table_name AS foreign_table_name,
           ccu.column_name AS foreign_column_name
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
      ON tc.constraint_name = kcu.constraint_name
    JOIN information_schema.constraint_column_usage AS ccu
      ON ccu.constraint_name = tc.constraint_name
    WHERE tc.constraint_type = 'FOREIGN KEY'
      AND tc.table_schema = 'public'
    ORDER BY tc.table_name
"""

PUBLIC_TABLES_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = 'public'
    ORDER BY table_name
"""

SEPARATOR = "-" * 60


async def print_report(connection: Any) -> dict[str, int]:
    """Imprime el reporte completo y retorna los totales del resumen."""
    print("Enums:")
    enums = await connection.fetch(ENUMS_QUERY)
    for row in enums:
        print(f"  {row['enum_name']}: {row['labels']}")

    print("\nTablas y conteos:")
    total_records = 0
    for table in TABLES:
        # Los nombres salen de TABLES, nunca de entrada del usuario.
        count = int(await connection.fetchval(f"SELECT COUNT(*) FROM {table}"))
        total_records += count
        marker = "+" if count > 0 else "-"
        print(f"  {marker} {table:<30} {count:>5} registros")
    print(f"\n  Total: {total_records} registros")

    print("\nÍndices (sin llaves primarias):")
    indexes = Counter(row["tablename"] for row in await connection.fetch(INDEXES_QUERY))
    for table, total in indexes.items():
        print(f"  {table}: {total} índices")
    print(f"\n  Total: {sum(indexes.values())} índices")

    print("\nLlaves foráneas:")
    foreign_keys = await connection.fetch(FOREIGN_KEYS_QUERY)
    fk_by_table = Counter(row["table_name"] for row in foreign_keys)
    for table, total in fk_by_table.items():
        print(f"  {table}: {total} foreign keys")
    print(f"\n  Total: {len(foreign_keys)} foreign keys")

    print("\nMuestra de datos:")
    leads = await connection.fetch("SELECT protocol, name, status FROM leads LIMIT 3")
    print(f"  Leads ({len(leads)} registros):")
    for row in leads:
        print(f"    - Protocolo: {row['protocol']}, Nombre: {row['name'] or 'N/A'}, Estado: {row['status']}")
    templates = await connection.fetch("SELECT template_key, name, status FROM workflow_templates LIMIT 5")
    print(f"  Workflow templates ({len(templates)} registros):")
    for row in templates:
        print(f"    - {row['template_key']}: {row['name']} ({row['status']})")

    summary = {
        "records": total_records,
        "indexes": sum(indexes.values()),
        "foreign_keys": len(foreign_keys),
        "enums": len(enums),
        "tables": len(TABLES),
    }
    print(f"\n{SEPARATOR}")
    print("Resumen:")
    print(f"  - {summary['records']} registros")
    print(f"  - {summary['indexes']} índices")
    print(f"  - {summary['foreign_keys']} foreign keys")
    print(f"  - {summary['enums']} enums")
    print(f"  - {summary['tables']} tablas verificadas")
    return summary


async def print_ping(connection: Any) -> None:
    """Versión, base, usuario, hora del servidor y tablas públicas."""
    row = await connection.fetchrow("SELECT version(), current_database(), current_user, now()")
    print(SEPARATOR)
    print(f"Versión PostgreSQL: {row['version']}")
    print(f"Base de datos: {row['current_database']}")
    print(f"Usuario: {row['current_user']}")
    print(f"Hora del servidor: {row['now']}")
    print(SEPARATOR)

    print("\nTablas en el schema public:")
    tables = await connection.fetch(PUBLIC_TABLES_QUERY)
    if not tables:
        print("  (ninguna tabla encontrada)")
    for index, table in enumerate(tables, start=1):
        print(f"  {index}. {table['table_name']}")


async def verify(
    database_url: str,
    *,
    ping: bool = False,
    connect: Callable[..., Any] = asyncpg.connect,
) -> None:
    # Supabase exige TLS pero sin verificación de la cadena del pooler.
    connection = await connect(database_url, ssl="require", timeout=10)
    try:
        if ping:
            await print_ping(connection)
        else:
            await print_report(connection)
    finally:
        await connection.close()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verifica el estado de la base de datos de Supabase.")
    parser.add_argument(
        "--database-url",
        help="URL de conexión. Si se omite se usa SUPABASE_DATABASE_URL.",
    )
    parser.add_argument(
        "--ping",
        action="store_true",
        help="Sólo prueba la conexión y lista las tablas públicas.",
    )
    parser.add_argument(
        "--dotenv",
        help="Ruta al archivo .env a cargar antes de leer variables de entorno.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    load_env_files(args.dotenv, script=SCRIPT)

    database_url = args.database_url or os.getenv("SUPABASE_DATABASE_URL")
    if not database_url:
        report(
            SCRIPT,
            "No se encontró SUPABASE_DATABASE_URL. Usa --database-url o define la variable.",
            error=True,
        )
        return 1

    report(SCRIPT, f"Conectando a {mask_database_url(database_url)}")
    try:
        asyncio.run(verify(database_url, ping=args.ping))
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
        report(SCRIPT, f"Falló la verificación: {exc}", error=True)
        return 1

    report(SCRIPT, "Base de datos verificada.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
