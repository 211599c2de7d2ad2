"""Punto de entrada principal para la aplicación FastAPI."""

import logging
import secrets
from pathlib import Path

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from zapdesk.api.routes.auth import router as auth_router
from zapdesk.api.routes.conversations import router as conversations_router
from zapdesk.api.routes.health import router as health_router
from zapdesk.core.config import settings
from zapdesk.core.logging import configure_logging, get_logger, resolve_log_level
from zapdesk.core.middleware import RequestLoggingMiddleware
from zapdesk.realtime.router import router as realtime_router


def _session_secret() -> str:
    if settings.session_secret:
        return settings.session_secret
    # Sin SESSION_SECRET las sesiones no sobreviven a un reinicio del proceso.
    get_logger("zapdesk").warning("session.secret_missing")
    return secrets.token_urlsafe(32)


def create_app() -> FastAPI:
    """Crea y configura la instancia de FastAPI."""
    default_log_level = logging.DEBUG if settings.environment != "production" else logging.INFO
    log_level = resolve_log_level(settings.log_level, default=default_log_level)
    per_logger_files: dict[str, str] = {}
    if settings.log_file_path:
        log_dir = Path(settings.log_file_path).parent
        per_logger_files = {
            "zapdesk.request": str(log_dir / "request.log"),
            "zapdesk.realtime": str(log_dir / "realtime.log"),
        }

    configure_logging(
        level=log_level,
        log_file=settings.log_file_path,
        per_logger_files=per_logger_files,
    )

    app = FastAPI(title="ZapDesk API", version="0.1.0")

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=_session_secret(),
        session_cookie="zapdesk.sid",
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.environment == "production",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Se ajustará por ambiente
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api = APIRouter(prefix="/api")
    api.include_router(health_router)
    api.include_router(auth_router)
    api.include_router(conversations_router)
    app.include_router(api)
    app.include_router(realtime_router)

    return app


app = create_app()
