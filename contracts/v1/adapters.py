"""Conversions between raw wire payloads and v1 contract models."""

from __future__ import annotations

import json
from typing import Any

from .schemas import (
    CompleteFrame,
    ErrorFrame,
    InboundFrame,
    OutboundFrame,
    QuestionFrame,
    ResultFrame,
    UnknownFrame,
)


INBOUND_FRAME_TYPES: dict[str, type] = {
    "question": QuestionFrame,
    "result": ResultFrame,
    "error": ErrorFrame,
    "complete": CompleteFrame,
}


def decode_frame_payload(raw: str | bytes) -> dict[str, Any]:
    """Decode one raw WebSocket frame into a JSON object.

    Raises ``ValueError`` (including ``json.JSONDecodeError``) when the frame
    is not valid JSON or is not an object.
    """
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload


def frame_from_payload(payload: dict[str, Any]) -> InboundFrame:
    """Classify a decoded payload into its inbound frame variant.

    Unrecognised ``type`` values become an ``UnknownFrame`` holding the raw
    payload. A recognised type with a malformed body raises
    ``pydantic.ValidationError`` (a ``ValueError``).
    """
    frame_type = payload.get("type")
    model = INBOUND_FRAME_TYPES.get(frame_type) if isinstance(frame_type, str) else None
    if model is None:
        return UnknownFrame(type=frame_type, raw=payload)
    return model.model_validate(payload)


def encode_frame(frame: OutboundFrame) -> str:
    """Serialize an outbound frame to the JSON text sent over the socket."""
    return json.dumps(frame.model_dump())
