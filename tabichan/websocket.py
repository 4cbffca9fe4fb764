"""Application-facing WebSocket client: one connection plus its router."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from .config import CONNECT_TIMEOUT_SECONDS
from .connection import ConnectionManager, Opener
from .events import EventEmitter
from .models import ConnectionState
from .router import MessageRouter


class TabichanWebSocket(EventEmitter):
    """Multi-turn chat over a persistent WebSocket.

    Subscribe with ``on(kind, listener)`` before calling ``connect()``;
    see ``EventKind`` for the events and their payloads. A dropped
    connection is final: call ``connect()`` again to start over.
    """

    def __init__(
        self,
        user_id: str,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        opener: Opener | None = None,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
    ):
        super().__init__()
        self.connection = ConnectionManager(
            user_id,
            api_key,
            base_url=base_url,
            emitter=self,
            opener=opener,
            connect_timeout=connect_timeout,
        )
        self.router = MessageRouter(self.connection, emitter=self)

    @property
    def user_id(self) -> str:
        return self.connection.user_id

    @property
    def api_key(self) -> str:
        return self.connection.api_key

    @property
    def base_url(self) -> str:
        return self.connection.base_url

    @property
    def is_connected(self) -> bool:
        return self.connection.is_connected

    @property
    def current_question_id(self) -> Optional[str]:
        return self.router.current_question_id

    async def connect(self) -> None:
        await self.connection.connect()

    def disconnect(self) -> None:
        self.connection.disconnect()

    async def start_chat(
        self,
        query: str,
        history: list[dict] | None = None,
        preferences: dict | None = None,
    ) -> None:
        await self.router.start_chat(query, history, preferences)

    async def send_response(self, response: str) -> None:
        await self.router.send_response(response)

    async def send_message(self, message: BaseModel | dict) -> None:
        await self.connection.send_message(message)

    def get_connection_state(self) -> ConnectionState:
        return self.connection.connection_state

    def has_active_question(self) -> bool:
        return self.router.has_active_question()

    def set_base_url(self, base_url: str) -> None:
        self.connection.set_base_url(base_url)

    async def __aenter__(self) -> "TabichanWebSocket":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.disconnect()
