"""v1 contract schemas and wire adapters."""

__version__ = "1.0.0"

from .adapters import (
    INBOUND_FRAME_TYPES,
    decode_frame_payload,
    encode_frame,
    frame_from_payload,
)
from .schemas import (
    ChatRequestFrame,
    CompleteFrame,
    ErrorFrame,
    ImageResponse,
    InboundFrame,
    OutboundFrame,
    PollChatResponse,
    QuestionData,
    QuestionFrame,
    ResponseFrame,
    ResultFrame,
    StartChatRequest,
    StartChatResponse,
    UnknownFrame,
)

__all__ = [
    "__version__",
    "ChatRequestFrame",
    "CompleteFrame",
    "ErrorFrame",
    "ImageResponse",
    "InboundFrame",
    "OutboundFrame",
    "PollChatResponse",
    "QuestionData",
    "QuestionFrame",
    "ResponseFrame",
    "ResultFrame",
    "StartChatRequest",
    "StartChatResponse",
    "UnknownFrame",
    "INBOUND_FRAME_TYPES",
    "decode_frame_payload",
    "encode_frame",
    "frame_from_payload",
]
