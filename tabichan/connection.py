"""Connection lifecycle for one Tabichan WebSocket session.

The manager opens the socket, arms the handshake timeout, reads inbound
frames in order on a single task, and turns close codes into events.
Each decoded frame is emitted as ``message``, then handed to ``frame_handler``
(the MessageRouter).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol
from urllib import parse

from pydantic import BaseModel
from websockets.asyncio.client import connect as websockets_connect
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from contracts.v1.adapters import decode_frame_payload, encode_frame, frame_from_payload
from contracts.v1.schemas import InboundFrame

from .config import (
    AUTH_FAILURE_CLOSE_CODE,
    CONNECT_TIMEOUT_SECONDS,
    NORMAL_CLOSE_CODE,
    resolve_api_key,
    resolve_ws_base_url,
)
from .errors import (
    AuthError,
    ConfigError,
    ConnectionCancelled,
    ConnectionTimeout,
    InvalidState,
    MessageParseError,
    NotOpen,
)
from .events import EventEmitter
from .models import ConnectionState, EventKind, Session

logger = logging.getLogger(__name__)

# websockets reports 1006 when the connection dropped without a close frame.
ABNORMAL_CLOSE_CODE = 1006

_CHANNEL_STATES = {
    State.CONNECTING: ConnectionState.CONNECTING,
    State.OPEN: ConnectionState.CONNECTED,
    State.CLOSING: ConnectionState.CLOSING,
    State.CLOSED: ConnectionState.CLOSED,
}


class Channel(Protocol):
    """The subset of ``websockets.asyncio.client.ClientConnection`` used here."""

    state: State
    close_code: Optional[int]
    close_reason: Optional[str]

    async def send(self, message: str) -> None:
        ...

    async def close(self, code: int = NORMAL_CLOSE_CODE, reason: str = "") -> None:
        ...

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        ...


Opener = Callable[[str], Awaitable[Channel]]
FrameHandler = Callable[[InboundFrame, dict], Any]


async def open_websocket(url: str) -> Channel:
    """Default opener. The handshake timeout is enforced by ConnectionManager."""
    return await websockets_connect(url, open_timeout=None)


class ConnectionManager:
    """Owns the socket of one session: connecting, open, closing, closed."""

    def __init__(
        self,
        user_id: str,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        emitter: EventEmitter | None = None,
        opener: Opener | None = None,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
    ):
        if not user_id:
            raise ConfigError("user_id is required")

        self.user_id = user_id
        self.api_key = resolve_api_key(api_key)
        self.base_url = resolve_ws_base_url(base_url)
        self.emitter = emitter or EventEmitter()
        self.connect_timeout = connect_timeout
        self.session = Session(user_id=user_id)
        self.frame_handler: FrameHandler | None = None

        self._opener = opener or open_websocket
        self._channel: Channel | None = None
        self._pending: asyncio.Future | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._reader: asyncio.Task | None = None
        self._close_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        user = parse.quote(self.user_id, safe="")
        return f"{self.base_url}/ws/chat/{user}?{parse.urlencode({'api_key': self.api_key})}"

    @property
    def is_connected(self) -> bool:
        return self.session.is_connected

    @property
    def connection_state(self) -> ConnectionState:
        """State of the underlying socket, or the session state when there is none."""
        if self._channel is None:
            if self.session.state is ConnectionState.CONNECTING:
                return ConnectionState.CONNECTING
            return ConnectionState.DISCONNECTED
        return _CHANNEL_STATES.get(self._channel.state, ConnectionState.UNKNOWN)

    def set_base_url(self, base_url: str) -> None:
        if self.is_connected:
            raise InvalidState("Cannot change base URL while connected")
        self.base_url = base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Connect / disconnect
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the socket and wait for the handshake.

        Concurrent calls share the attempt already in flight. Raises
        ConnectionTimeout when the handshake takes longer than
        ``connect_timeout``, or the opener's own exception when it fails.
        """
        if self._pending is not None:
            await asyncio.shield(self._pending)
            return
        if self.is_connected and self._channel is not None:
            return

        loop = asyncio.get_running_loop()
        pending = loop.create_future()
        self._pending = pending
        self.session.state = ConnectionState.CONNECTING
        logger.info("Connecting WebSocket for user %s to %s", self.user_id, self.base_url)

        self._reader = loop.create_task(self._run(self.url, pending))
        self._timer = loop.call_later(self.connect_timeout, self._on_connect_timeout, pending)
        await asyncio.shield(pending)

    def disconnect(self) -> None:
        """Close the socket and reset the session immediately.

        The close handshake finishes in the background; the ``disconnected``
        event fires when the socket reports it.
        """
        self._cancel_timer()
        pending, self._pending = self._pending, None
        reader, self._reader = self._reader, None
        channel, self._channel = self._channel, None

        if pending is not None and not pending.done():
            if reader is not None:
                reader.cancel()
            pending.set_exception(ConnectionCancelled("Connection attempt cancelled by disconnect()"))

        if channel is not None:
            logger.info("Disconnecting WebSocket for user %s", self.user_id)
            self._close_task = asyncio.get_running_loop().create_task(
                channel.close(NORMAL_CLOSE_CODE, "Client disconnecting")
            )
            self._close_task.add_done_callback(_log_close_failure)

        self.session.reset()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def send_message(self, message: BaseModel | dict) -> None:
        """Write one frame. Raises NotOpen when there is no open socket."""
        channel = self._channel
        if channel is None or channel.state is not State.OPEN:
            raise NotOpen("WebSocket is not open")

        text = encode_frame(message) if isinstance(message, BaseModel) else json.dumps(message)
        await channel.send(text)

    # ------------------------------------------------------------------
    # Socket signals
    # ------------------------------------------------------------------

    async def _run(self, url: str, pending: asyncio.Future) -> None:
        try:
            channel = await self._opener(url)
        except ConnectionClosed as e:
            self._handle_connect_error(e, pending)
            code = e.rcvd.code if e.rcvd is not None else ABNORMAL_CLOSE_CODE
            reason = e.rcvd.reason if e.rcvd is not None else ""
            self._handle_close(code, reason)
            return
        except Exception as e:
            self._handle_connect_error(e, pending)
            return

        self._channel = channel
        self._handle_open(pending)
        await self._read(channel)

    def _handle_open(self, pending: asyncio.Future) -> None:
        self._cancel_timer()
        self._pending = None
        self.session.state = ConnectionState.CONNECTED
        logger.info("WebSocket connected for user %s", self.user_id)
        self.emitter.emit(EventKind.CONNECTED)
        if not pending.done():
            pending.set_result(None)

    def _handle_connect_error(self, exc: Exception, pending: asyncio.Future) -> None:
        self._cancel_timer()
        self._pending = None
        self._reader = None
        self.session.reset()
        logger.warning("WebSocket connection failed for user %s: %s", self.user_id, exc)
        self.emitter.emit(EventKind.ERROR, exc)
        if not pending.done():
            pending.set_exception(exc)

    def _on_connect_timeout(self, pending: asyncio.Future) -> None:
        self._timer = None
        if pending.done() or self.session.state is not ConnectionState.CONNECTING:
            return

        logger.warning(
            "WebSocket handshake for user %s timed out after %ss", self.user_id, self.connect_timeout
        )
        if self._reader is not None:
            self._reader.cancel()
        self._reader = None
        self._pending = None
        self.session.reset()
        pending.set_exception(ConnectionTimeout("Connection timeout"))

    async def _read(self, channel: Channel) -> None:
        reader = asyncio.current_task()
        try:
            async for raw in channel:
                if reader is not self._reader:
                    logger.debug("Dropping frame from a socket that was disconnected")
                    continue
                self._handle_data(raw)
        except ConnectionClosed:
            pass

        code = channel.close_code if channel.close_code is not None else ABNORMAL_CLOSE_CODE
        reason = channel.close_reason or ""
        if reader is self._reader:
            self._handle_close(code, reason)
        else:
            self._emit_close(code, reason)

    def _handle_data(self, raw: str | bytes) -> None:
        try:
            payload = decode_frame_payload(raw)
        except ValueError as e:
            self._emit_parse_error(raw, e)
            return

        self.emitter.emit(EventKind.MESSAGE, payload)

        try:
            frame = frame_from_payload(payload)
        except ValueError as e:
            self._emit_parse_error(raw, e)
            return

        logger.debug("Received %r frame", frame.type)
        if self.frame_handler is not None:
            self.frame_handler(frame, payload)

    def _emit_parse_error(self, raw: str | bytes, error: ValueError) -> None:
        logger.warning("Failed to parse message for user %s: %s", self.user_id, error)
        self.emitter.emit(
            EventKind.ERROR, MessageParseError(f"Failed to parse message: {error}", raw=raw)
        )

    def _handle_close(self, code: int, reason: str) -> None:
        self._cancel_timer()
        self._pending = None
        self._reader = None
        self._channel = None
        self.session.reset()
        self._emit_close(code, reason)

    def _emit_close(self, code: int, reason: str) -> None:
        if code == AUTH_FAILURE_CLOSE_CODE:
            logger.warning("WebSocket for user %s rejected: invalid API key", self.user_id)
            self.emitter.emit(
                EventKind.AUTH_ERROR, AuthError("Authentication failed: Invalid API key")
            )
            return

        logger.info("WebSocket for user %s closed: %s %s", self.user_id, code, reason)
        self.emitter.emit(EventKind.DISCONNECTED, {"code": code, "reason": reason})

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


def _log_close_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Closing WebSocket failed: %s", exc)
