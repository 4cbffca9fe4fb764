"""Python client for the Tabichan trip-planning API."""

__version__ = "0.1.0"

from .client import TabichanClient
from .connection import ConnectionManager
from .errors import (
    AuthError,
    ChatError,
    ConfigError,
    ConnectionCancelled,
    ConnectionTimeout,
    GenerationFailed,
    HTTPStatusError,
    InvalidState,
    JobError,
    MessageParseError,
    NetworkError,
    NoActiveQuestion,
    NotConnected,
    NotOpen,
    PollFailure,
    PollTimeout,
    ProtocolError,
    TabichanError,
    TransportError,
    UnexpectedStatus,
)
from .events import EventEmitter
from .models import ApiResponse, ConnectionState, EventKind, Job, JobStatus, Session
from .router import MessageRouter
from .websocket import TabichanWebSocket

__all__ = [
    "__version__",
    "TabichanClient",
    "TabichanWebSocket",
    "ConnectionManager",
    "MessageRouter",
    "EventEmitter",
    "ApiResponse",
    "ConnectionState",
    "EventKind",
    "Job",
    "JobStatus",
    "Session",
    "TabichanError",
    "ConfigError",
    "TransportError",
    "HTTPStatusError",
    "NetworkError",
    "ProtocolError",
    "PollFailure",
    "JobError",
    "GenerationFailed",
    "UnexpectedStatus",
    "PollTimeout",
    "ConnectionTimeout",
    "ConnectionCancelled",
    "AuthError",
    "MessageParseError",
    "ChatError",
    "NotConnected",
    "NotOpen",
    "NoActiveQuestion",
    "InvalidState",
]
