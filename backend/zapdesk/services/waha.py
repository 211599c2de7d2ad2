"""Cliente HTTP para la API de WAHA (WhatsApp HTTP API)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import httpx

from zapdesk.core.config import settings
from zapdesk.core.logging import get_logger
from zapdesk.core.security import mask_secret

logger = get_logger(__name__)

WEBHOOK_EVENTS = ("message", "message.any", "session.status")

_NON_DIGITS = re.compile(r"\D")


class WahaError(RuntimeError):
    """Fallas al comunicarse con WAHA."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def format_chat_id(phone: str) -> str:
    """Normaliza un teléfono al formato `<dígitos>@c.us` que espera WAHA.

    Números de 10 u 11 dígitos se asumen brasileños y reciben el prefijo 55.
    """
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) in (10, 11):
        digits = f"55{digits}"
    return f"{digits}@c.us"


def build_webhook_config(webhook_url: str, api_key: str) -> dict[str, Any]:
    """Config de webhook con reintentos exponenciales y la API key como header."""
    return {
        "url": webhook_url,
        "events": list(WEBHOOK_EVENTS),
        "customHeaders": [{"name": "X-Api-Key", "value": api_key}],
        "retries": {"policy": "exponential", "delaySeconds": 2, "attempts": 10},
    }


@dataclass(slots=True)
class WahaClient:
    """Operaciones de sesión y envío de texto sobre una instancia WAHA."""

    base_url: str
    api_key: str
    session: str
    timeout: float = 10.0
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")

    def _headers(self, *, has_body: bool = False) -> dict[str, str]:
        headers = {"X-Api-Key": self.api_key, "Accept": "application/json"}
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def _request(self, method: str, path: str, *, json: Any = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method, url, json=json, headers=self._headers(has_body=json is not None)
                )
        except httpx.RequestError as exc:
            logger.exception(
                "waha.request_failed",
                extra={"path": path, "api_key": mask_secret(self.api_key), "error": str(exc)},
            )
            raise WahaError(f"Error de red al contactar WAHA: {exc}") from exc

        if response.status_code >= 400:
            logger.error(
                "waha.response_error",
                extra={"path": path, "status": response.status_code, "body": response.text},
            )
            raise WahaError(
                f"WAHA respondió {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    async def get_session(self) -> dict[str, Any]:
        """Retorna la información de la sesión configurada."""
        response = await self._request("GET", f"/api/sessions/{self.session}")
        return response.json()

    async def update_session(self, config: dict[str, Any]) -> dict[str, Any]:
        """Reemplaza la configuración de la sesión (PUT)."""
        payload = {"name": self.session, "config": config}
        response = await self._request("PUT", f"/api/sessions/{self.session}", json=payload)
        return response.json()

    async def configure_webhook(self, webhook_url: str) -> dict[str, Any]:
        return await self.update_session({"webhooks": [build_webhook_config(webhook_url, self.api_key)]})

    async def send_text(self, phone: str, text: str) -> dict[str, Any]:
        """Envía un mensaje de texto; la sesión viaja en el cuerpo, no en la URL."""
        chat_id = format_chat_id(phone)
        response = await self._request(
            "POST",
            "/api/sendText",
            json={"chatId": chat_id, "text": text, "session": self.session},
        )
        logger.info("waha.text_sent", extra={"chat_id": chat_id, "session": self.session})
        return response.json() if response.content else {}


@lru_cache(maxsize=1)
def get_waha_client() -> WahaClient:
    """Retorna el cliente reutilizable construido desde la configuración."""
    if not settings.waha_api or not settings.waha_api_key or not settings.waha_instancia:
        msg = "WAHA_API, WAHA_API_KEY y WAHA_INSTANCIA deben estar configurados"
        raise WahaError(msg)
    return WahaClient(
        base_url=settings.waha_api,
        api_key=settings.waha_api_key,
        session=settings.waha_instancia,
        timeout=settings.http_timeout_seconds,
    )
