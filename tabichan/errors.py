"""Exception hierarchy for the Tabichan client."""

from __future__ import annotations

from typing import Any


class TabichanError(Exception):
    """Base exception for every failure raised by this library."""


class ConfigError(TabichanError, ValueError):
    """Raised when a required setting (API key, user id) is missing."""


# --- unary transport --------------------------------------------------------


class TransportError(TabichanError):
    """Base exception for REST request failures."""


class HTTPStatusError(TransportError):
    """Raised when the server responded with a non-success status."""

    def __init__(self, status_code: int, detail: str, data: Any = None):
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.data = data


class NetworkError(TransportError):
    """Raised when the request was sent but no response was received."""


class ProtocolError(TransportError):
    """Raised when a response body does not match the expected contract."""


# --- polling ----------------------------------------------------------------


class PollFailure(TabichanError):
    """Raised by ``wait_for_chat`` when a poll request itself fails."""


class JobError(TabichanError):
    """Base exception for terminal job outcomes reported by the service."""

    def __init__(self, message: str, poll_data: dict[str, Any] | None = None):
        super().__init__(message)
        self.poll_data = poll_data or {}


class GenerationFailed(JobError):
    """Raised when the service reports the job as ``failed``."""


class UnexpectedStatus(JobError):
    """Raised when the service reports a status this client does not know."""

    def __init__(self, status: Any, poll_data: dict[str, Any] | None = None):
        super().__init__(f"Unexpected status: {status}", poll_data)
        self.status = status


class PollTimeout(TabichanError):
    """Raised when the job is still running after the poll budget is spent."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


# --- bidirectional transport ------------------------------------------------


class ConnectionTimeout(TabichanError):
    """Raised when the WebSocket handshake does not finish in time."""


class ConnectionCancelled(TabichanError):
    """Raised to awaiters of a connect attempt aborted by ``disconnect()``."""


class AuthError(TabichanError):
    """Emitted when the server closes the socket with code 1008."""


class MessageParseError(TabichanError):
    """Emitted when an inbound frame cannot be decoded."""

    def __init__(self, message: str, raw: Any = None):
        super().__init__(message)
        self.raw = raw


class ChatError(TabichanError):
    """Emitted for ``error`` frames sent by the server."""


class NotConnected(TabichanError):
    """Raised when a chat operation needs a connected session."""


class NotOpen(TabichanError):
    """Raised when sending on a socket that is absent or not open."""


class NoActiveQuestion(TabichanError):
    """Raised by ``send_response`` when no question is outstanding."""


class InvalidState(TabichanError):
    """Raised when an operation is not allowed in the current state."""
