"""Pydantic contracts for the v1 Tabichan REST and WebSocket APIs."""

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _StrictModel(BaseModel):
    """Base model that rejects unknown fields."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class _LenientModel(BaseModel):
    """Base model for server payloads; tolerates fields added later."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


# --- REST -------------------------------------------------------------------


class StartChatRequest(_StrictModel):
    user_query: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    country: str = "japan"
    history: list[dict[str, Any]] = Field(default_factory=list)
    additional_inputs: dict[str, Any] = Field(default_factory=dict)


class StartChatResponse(_LenientModel):
    task_id: str


class PollChatResponse(_LenientModel):
    # Job-level fields; any shape is passed through to the caller.
    status: Any = None
    result: Any = None
    error: Any = None


class ImageResponse(_LenientModel):
    base64: str


# --- WebSocket, outbound ----------------------------------------------------


class ChatRequestFrame(_StrictModel):
    type: Literal["chat_request"] = "chat_request"
    query: str
    history: list[dict[str, Any]] = Field(default_factory=list)
    preferences: dict[str, Any] = Field(default_factory=dict)


class ResponseFrame(_StrictModel):
    type: Literal["response"] = "response"
    question_id: str
    response: str


# --- WebSocket, inbound -----------------------------------------------------


class QuestionData(_LenientModel):
    question_id: str
    question: str


class QuestionFrame(_LenientModel):
    type: Literal["question"]
    data: QuestionData


class ResultFrame(_LenientModel):
    type: Literal["result"]
    data: Any = None


class ErrorFrame(_LenientModel):
    type: Literal["error"]
    data: Any = None

    @property
    def message(self) -> str:
        if self.data is None:
            return "Unknown error"
        return self.data if isinstance(self.data, str) else str(self.data)


class CompleteFrame(_LenientModel):
    type: Literal["complete"]


class UnknownFrame(_LenientModel):
    """Any frame whose ``type`` this client does not recognise."""

    type: Any = None
    raw: dict[str, Any] = Field(default_factory=dict)


InboundFrame = Union[QuestionFrame, ResultFrame, ErrorFrame, CompleteFrame, UnknownFrame]
OutboundFrame = Union[ChatRequestFrame, ResponseFrame]
