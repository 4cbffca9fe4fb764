"""Observer interface for WebSocket session events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

from .models import EventKind

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


def _as_kind(kind: EventKind | str) -> EventKind:
    try:
        return EventKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in EventKind)
        raise ValueError(f"Unknown event kind {kind!r}. Expected one of: {valid}") from None


class EventEmitter:
    """Synchronous publish/subscribe over the closed set of ``EventKind`` values.

    Listeners run in registration order on the emitting thread of control.
    A listener that raises is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._listeners: dict[EventKind, list[tuple[Listener, bool]]] = defaultdict(list)

    def on(self, kind: EventKind | str, listener: Listener | None = None):
        """Register ``listener`` for ``kind`` and return it.

        Called without a listener, returns a decorator.
        """
        if listener is None:
            return lambda fn: self.on(kind, fn)
        self._listeners[_as_kind(kind)].append((listener, False))
        return listener

    def once(self, kind: EventKind | str, listener: Listener) -> Listener:
        """Register ``listener`` to run on the next ``kind`` event only."""
        self._listeners[_as_kind(kind)].append((listener, True))
        return listener

    def off(self, kind: EventKind | str, listener: Listener) -> None:
        """Remove every registration of ``listener`` for ``kind``."""
        kind = _as_kind(kind)
        self._listeners[kind] = [
            (fn, once) for fn, once in self._listeners[kind] if fn is not listener
        ]

    def remove_all_listeners(self, kind: EventKind | str | None = None) -> None:
        if kind is None:
            self._listeners.clear()
        else:
            self._listeners.pop(_as_kind(kind), None)

    def listener_count(self, kind: EventKind | str) -> int:
        return len(self._listeners.get(_as_kind(kind), []))

    def emit(self, kind: EventKind | str, *args: Any) -> bool:
        """Call every listener of ``kind`` with ``args``. Returns True if any listener ran."""
        kind = _as_kind(kind)
        registered = self._listeners.get(kind)
        if not registered:
            return False

        # Drop one-shot listeners before calling so a re-emit from inside
        # a listener cannot fire them twice.
        self._listeners[kind] = [(fn, once) for fn, once in registered if not once]
        for listener, _ in list(registered):
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener %r for %r event failed", listener, kind.value)
        return True
