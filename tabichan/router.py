"""Classify inbound frames and track the outstanding question."""

from __future__ import annotations

import logging
from typing import Any, Optional

from contracts.v1.schemas import (
    ChatRequestFrame,
    CompleteFrame,
    ErrorFrame,
    InboundFrame,
    QuestionFrame,
    ResponseFrame,
    ResultFrame,
)

from .connection import ConnectionManager
from .errors import ChatError, NoActiveQuestion, NotConnected
from .events import EventEmitter
from .models import EventKind

logger = logging.getLogger(__name__)


class MessageRouter:
    """Dispatches decoded frames of one session to typed events.

    The connection has already emitted each frame verbatim as ``message``;
    this emits the specific event. Dispatch never suspends.
    """

    def __init__(self, connection: ConnectionManager, emitter: EventEmitter | None = None):
        self.connection = connection
        self.emitter = emitter or connection.emitter
        connection.frame_handler = self.handle_frame

    @property
    def current_question_id(self) -> Optional[str]:
        return self.connection.session.question_id

    def has_active_question(self) -> bool:
        return self.current_question_id is not None

    def handle_frame(self, frame: InboundFrame, payload: dict[str, Any]) -> None:
        if isinstance(frame, QuestionFrame):
            self.connection.session.question_id = frame.data.question_id
            self.emitter.emit(EventKind.QUESTION, frame.data.model_dump())
        elif isinstance(frame, ResultFrame):
            self.emitter.emit(EventKind.RESULT, frame.data)
        elif isinstance(frame, ErrorFrame):
            self.emitter.emit(EventKind.CHAT_ERROR, ChatError(frame.message))
        elif isinstance(frame, CompleteFrame):
            self.connection.session.question_id = None
            self.emitter.emit(EventKind.COMPLETE)
        else:
            logger.info("Unknown message type %r", frame.type)
            self.emitter.emit(EventKind.UNKNOWN_MESSAGE, payload)

    async def start_chat(
        self,
        query: str,
        history: list[dict] | None = None,
        preferences: dict | None = None,
    ) -> None:
        """Send a ``chat_request`` frame. Raises NotConnected before connect()."""
        if not self.connection.is_connected:
            raise NotConnected("WebSocket is not connected. Call connect() first.")

        await self.connection.send_message(
            ChatRequestFrame(query=query, history=history or [], preferences=preferences or {})
        )

    async def send_response(self, response: str) -> None:
        """Answer the outstanding question.

        The question is cleared locally as soon as the frame is written, not
        when the server acknowledges it.
        """
        if not self.connection.is_connected:
            raise NotConnected("WebSocket is not connected")
        question_id = self.current_question_id
        if question_id is None:
            raise NoActiveQuestion("No active question to respond to")

        await self.connection.send_message(ResponseFrame(question_id=question_id, response=response))
        self.connection.session.question_id = None
