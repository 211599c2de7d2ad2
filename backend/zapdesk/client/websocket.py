"""Cliente websocket con reconexión exponencial y heartbeat.

El cliente es una máquina de estados con un único task dueño del socket:

    disconnected -> connecting -> open -> disconnected (cierre remoto, reintento)
    cualquier estado -> closing -> disconnected (stop() manual, sin reintento)

Los frames son objetos JSON `{"type": ..., "data": ...}`. Los tipos `pong` y
`connected` se consumen aquí; el resto llega intacto a `on_message`. La entrega
es best-effort: lo que se envía sin conexión abierta se descarta.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import inspect
import json
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import websockets

from zapdesk.core.logging import get_logger
from zapdesk.realtime import protocol

logger = get_logger(__name__)

INITIAL_BACKOFF_DELAY = 1.0
MAX_BACKOFF_DELAY = 30.0
HEARTBEAT_INTERVAL = 25.0
RECONNECT_LOG_EVERY = 5

# Tope del exponente: 2**64 segundos ya excede cualquier máximo configurable.
_MAX_EXPONENT = 64

MessageHandler = Callable[[dict[str, Any]], Awaitable[None] | None]
ReconnectHandler = Callable[[], Awaitable[None] | None]
Connector = Callable[..., Any]


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"


def backoff_delay(
    attempt: int,
    *,
    initial: float = INITIAL_BACKOFF_DELAY,
    maximum: float = MAX_BACKOFF_DELAY,
) -> float:
    """Segundos de espera antes del reintento `attempt` (desde 0), sin jitter."""
    if attempt < 0:
        raise ValueError("attempt must be >= 0")
    return min(initial * 2 ** min(attempt, _MAX_EXPONENT), maximum)


def websocket_url(base_url: str, path: str = "/ws") -> str:
    """Deriva la URL del socket: `https` usa `wss`, cualquier otro esquema usa `ws`."""
    parts = urlsplit(base_url)
    scheme = "wss" if parts.scheme in ("https", "wss") else "ws"
    return urlunsplit((scheme, parts.netloc, path, "", ""))


async def _call(handler: Callable[..., Any], *args: Any) -> None:
    result = handler(*args)
    if inspect.isawaitable(result):
        await result


class ReconnectingWebSocket:
    """Mantiene una conexión a `/ws` mientras el dueño no llame `stop()`."""

    def __init__(
        self,
        url: str,
        *,
        on_message: MessageHandler | None = None,
        on_reconnect: ReconnectHandler | None = None,
        headers: Mapping[str, str] | None = None,
        initial_delay: float = INITIAL_BACKOFF_DELAY,
        max_delay: float = MAX_BACKOFF_DELAY,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        connect: Connector | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self.url = url
        self.on_message = on_message
        self.on_reconnect = on_reconnect
        self.headers = dict(headers or {})
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.heartbeat_interval = heartbeat_interval
        self._connect = connect or websockets.connect
        self._sleep = sleep or asyncio.sleep

        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempts = 0
        self._manual_close = False
        self._has_opened = False
        self._ws: Any | None = None
        self._runner: asyncio.Task[None] | None = None
        self._heartbeat: asyncio.Task[None] | None = None
        self._opened = asyncio.Event()

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.OPEN

    async def __aenter__(self) -> ReconnectingWebSocket:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def start(self) -> None:
        """Habilita la conexión; no hace nada si ya hay un runner activo."""
        if self._runner is not None and not self._runner.done():
            return
        self._manual_close = False
        self._runner = asyncio.create_task(self._run(), name="zapdesk-ws-runner")

    async def stop(self) -> None:
        """Cierre manual: cancela el reintento pendiente y no vuelve a conectar."""
        logger.info("ws.disconnecting", extra={"url": self.url})
        self._manual_close = True
        if self._ws is not None:
            self.state = ConnectionState.CLOSING
        await self._stop_heartbeat()

        runner, self._runner = self._runner, None
        # Desde un callback el runner es la tarea actual: basta con cerrar el socket.
        if runner is not None and not runner.done() and runner is not asyncio.current_task():
            runner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await runner

        ws, self._ws = self._ws, None
        if ws is not None:
            await self._close_socket(ws)
        self._opened.clear()
        self.state = ConnectionState.DISCONNECTED

    async def wait_open(self, timeout: float | None = None) -> bool:
        """Espera a que la conexión esté abierta; retorna False si vence el timeout."""
        try:
            await asyncio.wait_for(self._opened.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def send(self, event_type: str, data: Any = None) -> bool:
        """Envía un frame; sin conexión abierta se descarta con un aviso."""
        ws = self._ws
        if ws is None or self.state is not ConnectionState.OPEN:
            logger.warning("ws.send_skipped", extra={"type": event_type, "state": self.state.value})
            return False
        try:
            await ws.send(json.dumps({"type": event_type, "data": data}))
        except (websockets.ConnectionClosed, OSError) as exc:
            logger.error("ws.send_failed", extra={"type": event_type, "error": str(exc)})
            return False
        return True

    async def _run(self) -> None:
        while not self._manual_close:
            self.state = ConnectionState.CONNECTING
            logger.debug("ws.connecting", extra={"url": self.url})
            try:
                async with self._connect(self.url, additional_headers=self.headers) as ws:
                    self._ws = ws
                    await self._handle_open(ws)
                    async for raw in ws:
                        await self._dispatch(raw)
                    logger.info("ws.closed", extra={"url": self.url})
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                # Cualquier falla de conexión termina en reintento.
                logger.warning("ws.connection_error", extra={"url": self.url, "error": repr(exc)})
            finally:
                self._ws = None
                self._opened.clear()
                await self._stop_heartbeat()

            if self._manual_close:
                break
            self.state = ConnectionState.DISCONNECTED
            await self._wait_before_reconnect()

        self.state = ConnectionState.DISCONNECTED

    async def _wait_before_reconnect(self) -> None:
        delay = backoff_delay(self.reconnect_attempts, initial=self.initial_delay, maximum=self.max_delay)
        if self.reconnect_attempts % RECONNECT_LOG_EVERY == 0:
            logger.info(
                "ws.reconnect_scheduled",
                extra={"delay_s": delay, "attempt": self.reconnect_attempts + 1},
            )
        await self._sleep(delay)
        self.reconnect_attempts += 1

    async def _handle_open(self, ws: Any) -> None:
        reconnected = self._has_opened
        self._has_opened = True
        self.state = ConnectionState.OPEN
        self.reconnect_attempts = 0
        self._opened.set()
        self._heartbeat = asyncio.create_task(self._heartbeat_loop(ws), name="zapdesk-ws-heartbeat")
        logger.info("ws.connected", extra={"url": self.url, "reconnected": reconnected})

        if reconnected and self.on_reconnect is not None:
            try:
                await _call(self.on_reconnect)
            except Exception:
                logger.exception("ws.reconnect_handler_failed")

    async def _heartbeat_loop(self, ws: Any) -> None:
        payload = json.dumps({"type": protocol.PING})
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                await ws.send(payload)
            except (websockets.ConnectionClosed, OSError) as exc:
                logger.error("ws.ping_failed", extra={"error": str(exc)})
                return

    async def _stop_heartbeat(self) -> None:
        task, self._heartbeat = self._heartbeat, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _dispatch(self, raw: str | bytes) -> None:
        try:
            frame = protocol.decode(raw)
        except protocol.FrameError as exc:
            logger.error("ws.invalid_frame", extra={"error": str(exc)})
            return

        if frame["type"] in protocol.RESERVED_TYPES or self.on_message is None:
            return
        try:
            await _call(self.on_message, frame)
        except Exception:
            logger.exception("ws.message_handler_failed", extra={"type": frame["type"]})

    @staticmethod
    async def _close_socket(ws: Any) -> None:
        try:
            await ws.close()
        except (websockets.ConnectionClosed, OSError) as exc:
            logger.warning("ws.close_failed", extra={"error": str(exc)})
