"""Dependencias de autenticación basadas en la cookie de sesión."""

from collections.abc import Mapping, MutableMapping
from typing import Any

from fastapi import HTTPException, Request, status

from zapdesk.models.session import AuthSession

SESSION_AUTH_KEY = "isAuthenticated"
SESSION_USER_KEY = "userId"


def session_from_mapping(data: Mapping[str, Any]) -> AuthSession:
    """Construye el `AuthSession` a partir de la sesión firmada de Starlette."""
    user_id = data.get(SESSION_USER_KEY)
    if data.get(SESSION_AUTH_KEY) and isinstance(user_id, str) and user_id:
        return AuthSession.for_user(user_id)
    return AuthSession.anonymous()


def store_session(data: MutableMapping[str, Any], username: str) -> None:
    data[SESSION_AUTH_KEY] = True
    data[SESSION_USER_KEY] = username


def get_auth_session(request: Request) -> AuthSession:
    return session_from_mapping(request.session)


def require_auth(request: Request) -> AuthSession:
    """Rechaza con 401 cuando no hay sesión autenticada."""
    session = get_auth_session(request)
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Unauthorized", "message": "Authentication required"},
        )
    return session
