"""Endpoint de salud mínimo para validaciones rápidas."""
from fastapi import APIRouter

from zapdesk.realtime.manager import manager

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Estado del servicio")
def healthcheck() -> dict[str, object]:
    """Retorna un payload indicando que la API está viva y cuántos sockets hay abiertos."""
    return {"status": "ok", "websocket": manager.stats()}
