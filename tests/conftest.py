"""
Shared fixtures for Tabichan client tests.
"""

import asyncio
import json

import pytest
from websockets.protocol import State

from tabichan.models import EventKind


_ENV_VARS = ("TABICHAN_API_KEY", "TABICHAN_BASE_URL", "TABICHAN_WS_BASE_URL")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep tests independent of the developer's shell environment."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def api_key(monkeypatch):
    """Provide an API key through the environment."""
    monkeypatch.setenv("TABICHAN_API_KEY", "test-api-key")
    return "test-api-key"


# ---------------------------------------------------------------------------
# REST
# ---------------------------------------------------------------------------


class FakeHTTPResponse:
    def __init__(self, payload, status: int = 200):
        if payload is None:
            raw = ""
        elif isinstance(payload, str):
            raw = payload
        else:
            raw = json.dumps(payload)
        self._raw = raw.encode("utf-8")
        self.status = status
        self.headers = {"Content-Type": "application/json"}

    def read(self):
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class HTTPStub:
    """Scripted replacement for ``urllib.request.urlopen``.

    Queued items are returned (or raised, for exceptions) in order; the
    last item repeats once the queue is down to one.
    """

    def __init__(self):
        self.requests = []
        self._responses = []

    def queue(self, *items):
        self._responses.extend(items)

    def __call__(self, req, timeout=None):
        self.requests.append((req, timeout))
        if not self._responses:
            raise AssertionError(f"Unexpected request: {req.get_method()} {req.full_url}")
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, BaseException):
            raise item
        return FakeHTTPResponse(item)

    @property
    def last_request(self):
        return self.requests[-1][0]

    @property
    def last_timeout(self):
        return self.requests[-1][1]


@pytest.fixture
def http_stub(monkeypatch):
    stub = HTTPStub()
    monkeypatch.setattr("urllib.request.urlopen", stub)
    return stub


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


class _Close:
    def __init__(self, code: int, reason: str):
        self.code = code
        self.reason = reason


class FakeChannel:
    """In-memory stand-in for a websockets ClientConnection."""

    def __init__(self):
        self.state = State.OPEN
        self.close_code = None
        self.close_reason = None
        self.sent = []
        self.close_calls = []
        self.send_error = None
        self.responder = None
        self._incoming = asyncio.Queue()

    def feed(self, message):
        """Deliver one inbound frame; dicts are JSON-encoded."""
        if isinstance(message, dict):
            message = json.dumps(message)
        self._incoming.put_nowait(message)

    def server_close(self, code: int, reason: str = ""):
        self.state = State.CLOSING
        self._incoming.put_nowait(_Close(code, reason))

    def sent_frames(self):
        return [json.loads(m) for m in self.sent]

    async def send(self, message):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(message)
        if self.responder is not None:
            for reply in self.responder(json.loads(message)):
                self.feed(reply)

    async def close(self, code=1000, reason=""):
        self.close_calls.append((code, reason))
        if self.state is State.OPEN:
            self.server_close(code, reason)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if isinstance(item, _Close):
            self.state = State.CLOSED
            self.close_code = item.code
            self.close_reason = item.reason
            raise StopAsyncIteration
        return item


class FakeOpener:
    """Replacement for the websockets opener used by ConnectionManager.

    Set ``error`` to make the handshake fail, or clear ``gate`` to hold the
    handshake open until the test sets it.
    """

    def __init__(self):
        self.urls = []
        self.channel = FakeChannel()
        self.error = None
        self.gate = None

    async def __call__(self, url):
        self.urls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.channel


@pytest.fixture
def fake_opener():
    return FakeOpener()


@pytest.fixture
def record_events():
    """Subscribe to every event kind on an emitter and record emissions in order.

    Usage:
        events = record_events(ws)
        ...
        assert events.kinds() == ["connected"]
    """
    class _Recorder(list):
        def kinds(self):
            return [kind for kind, _ in self]

        def payloads(self, kind):
            return [args for k, args in self if k == kind]

    def _record(emitter):
        recorded = _Recorder()
        for kind in EventKind:
            emitter.on(kind, lambda *args, _kind=kind.value: recorded.append((_kind, args)))
        return recorded

    return _record


async def drain(rounds: int = 10):
    """Let background reader tasks process queued frames."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    return drain
