"""Endpoints de login, logout y verificación de sesión del panel."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from zapdesk.api.deps import get_auth_session, store_session
from zapdesk.core.config import settings
from zapdesk.core.logging import get_logger
from zapdesk.core.security import constant_time_equals
from zapdesk.models.session import AuthSession

router = APIRouter(prefix="/auth", tags=["auth"])

logger = get_logger(__name__)


class LoginPayload(BaseModel):
    """Credenciales enviadas por la pantalla de login."""

    username: str | None = None
    password: str | None = None


def validate_login(username: str, password: str) -> bool:
    """Compara contra `LOGIN`/`SENHA`; falla si no están configurados."""
    if not settings.login or not settings.senha:
        raise RuntimeError("LOGIN and SENHA environment variables must be set")
    user_ok = constant_time_equals(username, settings.login)
    password_ok = constant_time_equals(password, settings.senha)
    return user_ok and password_ok


@router.post("/login", summary="Inicia sesión en el panel")
async def login(payload: LoginPayload, request: Request) -> dict[str, object]:
    if not payload.username or not payload.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Missing credentials",
                "message": "Username and password are required",
            },
        )

    try:
        valid = validate_login(payload.username, payload.password)
    except RuntimeError as exc:
        logger.error("auth.login_misconfigured", extra={"error": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Server error", "message": "An error occurred during login"},
        ) from exc

    if not valid:
        logger.warning("auth.login_rejected", extra={"username": payload.username})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid credentials", "message": "Username or password is incorrect"},
        )

    store_session(request.session, payload.username)
    logger.info("auth.login_succeeded", extra={"username": payload.username})
    return {"success": True, "user": {"username": payload.username}}


@router.post("/logout", summary="Cierra la sesión actual")
async def logout(request: Request) -> dict[str, bool]:
    request.session.clear()
    return {"success": True}


@router.get("/check", summary="Indica si la sesión está autenticada")
async def check(session: AuthSession = Depends(get_auth_session)) -> dict[str, object]:
    return session.to_wire()
