"""
Data structures shared by the REST and WebSocket clients.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from contracts.v1.schemas import PollChatResponse


class JobStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"
    CLOSED = "closed"
    UNKNOWN = "unknown"


class EventKind(str, Enum):
    """Every event a WebSocket session can emit.

    Payloads:
        connected       no arguments
        disconnected    ``{"code": int, "reason": str}``
        message         the raw decoded frame (dict)
        question        ``{"question_id": str, "question": str}``
        result          the frame's ``data`` value
        complete        no arguments
        error           an exception (transport error or MessageParseError)
        authError       an AuthError
        chatError       a ChatError
        unknownMessage  the raw decoded frame (dict)
    """

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    MESSAGE = "message"
    QUESTION = "question"
    RESULT = "result"
    COMPLETE = "complete"
    ERROR = "error"
    AUTH_ERROR = "authError"
    CHAT_ERROR = "chatError"
    UNKNOWN_MESSAGE = "unknownMessage"


@dataclass
class Job:
    """Snapshot of an asynchronous generation task, as seen by one poll.

    ``status`` and ``error`` hold whatever the service sent, which is not
    necessarily a string.
    """

    task_id: str
    status: Any = None
    result: Any = None
    error: Any = None

    @property
    def known_status(self) -> Optional[JobStatus]:
        """The status as a JobStatus, or None for a status this client doesn't know."""
        if not isinstance(self.status, str):
            return None
        try:
            return JobStatus(self.status)
        except ValueError:
            return None

    @property
    def error_text(self) -> str:
        if not self.error:
            return "Unknown error"
        return self.error if isinstance(self.error, str) else str(self.error)

    @classmethod
    def from_poll_response(cls, task_id: str, response: PollChatResponse) -> "Job":
        return cls(
            task_id=task_id,
            status=response.status,
            result=response.result,
            error=response.error,
        )

    def to_poll_data(self) -> dict:
        data = {"status": self.status}
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ApiResponse:
    """Decoded response of a generic REST call."""

    data: Any
    status: int
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class Session:
    """Mutable state of one WebSocket session.

    ``question_id`` is only ever set while ``state`` is CONNECTED.
    """

    user_id: str
    state: ConnectionState = ConnectionState.DISCONNECTED
    question_id: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def reset(self) -> None:
        self.state = ConnectionState.DISCONNECTED
        self.question_id = None
