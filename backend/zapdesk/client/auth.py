"""Cliente de sesión del panel: verificación, login y logout vía REST."""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from zapdesk.core.logging import get_logger
from zapdesk.models.session import AuthSession

logger = get_logger(__name__)


class AuthClient:
    """Dueño de la única `AuthSession` de un cliente de consola.

    Los fallos de red o de formato nunca se propagan: el resultado es una
    sesión anónima.
    """

    def __init__(self, base_url: str, *, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self.http = client or httpx.AsyncClient(base_url=base_url, timeout=10.0)
        self.session = AuthSession.anonymous()
        self.is_loading = True

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http.aclose()

    async def __aenter__(self) -> AuthClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def check(self) -> AuthSession:
        """Consulta `GET /api/auth/check` y actualiza la sesión local."""
        try:
            response = await self.http.get("/api/auth/check")
            response.raise_for_status()
            self.session = AuthSession.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.error("auth.check_failed", extra={"error": str(exc)})
            self.session = AuthSession.anonymous()
        finally:
            self.is_loading = False
        return self.session

    async def login(self) -> AuthSession:
        """Revalida la sesión tras un login hecho por otra vía."""
        return await self.check()

    async def sign_in(self, username: str, password: str) -> AuthSession:
        """Envía credenciales a `POST /api/auth/login` y revalida la sesión."""
        try:
            response = await self.http.post(
                "/api/auth/login", json={"username": username, "password": password}
            )
        except httpx.HTTPError as exc:
            logger.error("auth.sign_in_failed", extra={"error": str(exc)})
            self.session = AuthSession.anonymous()
            return self.session
        if response.status_code != 200:
            logger.warning("auth.sign_in_rejected", extra={"status": response.status_code})
            self.session = AuthSession.anonymous()
            return self.session
        return await self.check()

    async def logout(self) -> None:
        """Cierra la sesión remota; la sesión local se limpia aunque la llamada falle."""
        try:
            response = await self.http.post("/api/auth/logout")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("auth.logout_failed", extra={"error": str(exc)})
        finally:
            self.session = AuthSession.anonymous()
