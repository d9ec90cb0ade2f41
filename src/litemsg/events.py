"""Server-sent events of a streamed Messages API response."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
)

from .constants import StopReason
from .content import TextBlock, ToolUseBlock, decode_content_block
from .dynamic import load_json
from .errors import DecodeError, decode_error_from_validation
from .response import Message, Usage


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class MessageStartEvent(_Event):
    """Opens the stream with an envelope skeleton that has no content yet."""

    type: Literal["message_start"] = "message_start"
    message: Message


class ContentBlockStartEvent(_Event):
    """Opens the content block at `index`, seeded with its initial shape."""

    type: Literal["content_block_start"] = "content_block_start"
    index: StrictInt
    content_block: TextBlock | ToolUseBlock

    @field_validator("content_block", mode="before")
    @classmethod
    def _decode_seed(cls, value: Any) -> TextBlock | ToolUseBlock:
        return decode_content_block(value)


class TextDelta(_Event):
    type: Literal["text_delta"] = "text_delta"
    text: str


class InputJsonDelta(_Event):
    """A raw fragment of a tool-use block's input JSON.

    Fragments are generally not valid JSON on their own.
    """

    type: Literal["input_json_delta"] = "input_json_delta"
    partial_json: str


_DELTA_TYPES: dict[str, type[TextDelta] | type[InputJsonDelta]] = {
    "text_delta": TextDelta,
    "input_json_delta": InputJsonDelta,
}


class ContentBlockDeltaEvent(_Event):
    type: Literal["content_block_delta"] = "content_block_delta"
    index: StrictInt
    delta: Annotated[TextDelta | InputJsonDelta, Field(discriminator="type")]

    @field_validator("delta", mode="before")
    @classmethod
    def _decode_delta(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        delta_type = value.get("type")
        if not isinstance(delta_type, str) or delta_type not in _DELTA_TYPES:
            raise DecodeError(
                f"Unknown content block delta type: {delta_type!r}",
                key="delta.type",
                type_=str(delta_type),
            )
        return value


class ContentBlockStopEvent(_Event):
    type: Literal["content_block_stop"] = "content_block_stop"
    index: StrictInt


class MessageDelta(_Event):
    stop_reason: StopReason | None = None
    stop_sequence: str | None = None


class MessageDeltaEvent(_Event):
    """Reports top-level changes to the message: stop reason and usage."""

    type: Literal["message_delta"] = "message_delta"
    delta: MessageDelta
    usage: Usage | None = None


class MessageStopEvent(_Event):
    type: Literal["message_stop"] = "message_stop"


class PingEvent(_Event):
    type: Literal["ping"] = "ping"


class ErrorDetail(_Event):
    type: str
    message: str = ""


class ErrorEvent(_Event):
    """An error reported by the server in the middle of a stream."""

    type: Literal["error"] = "error"
    error: ErrorDetail


StreamEvent = Union[
    MessageStartEvent,
    ContentBlockStartEvent,
    ContentBlockDeltaEvent,
    ContentBlockStopEvent,
    MessageDeltaEvent,
    MessageStopEvent,
    PingEvent,
    ErrorEvent,
]

_EVENT_TYPES: dict[str, type[StreamEvent]] = {
    "message_start": MessageStartEvent,
    "content_block_start": ContentBlockStartEvent,
    "content_block_delta": ContentBlockDeltaEvent,
    "content_block_stop": ContentBlockStopEvent,
    "message_delta": MessageDeltaEvent,
    "message_stop": MessageStopEvent,
    "ping": PingEvent,
    "error": ErrorEvent,
}


def decode_stream_event(
    data: bytes | str | dict[str, Any], event: str | None = None
) -> StreamEvent:
    """Decode the JSON payload of one server-sent event.

    Args:
        data: The event's ``data`` field, raw or already parsed.
        event: The SSE ``event`` name, if the transport supplied one.

    Returns:
        StreamEvent: The typed event.

    Raises:
        DecodeError: If the payload is not a JSON object, its ``type`` is
            unknown or disagrees with `event`, or a required field is missing.
    """
    obj = load_json(data) if isinstance(data, (bytes, bytearray, str)) else data
    if not isinstance(obj, dict):
        raise DecodeError(
            f"Stream event must be a JSON object, got {type(obj).__name__}"
        )
    event_type = obj.get("type")
    if event_type is None:
        raise DecodeError("Stream event is missing 'type'", key="type")
    if event is not None and event != event_type:
        raise DecodeError(
            f"Event name {event!r} does not match payload type {event_type!r}",
            key="type",
            type_=str(event_type),
        )
    model = _EVENT_TYPES.get(event_type) if isinstance(event_type, str) else None
    if model is None:
        raise DecodeError(
            f"Unknown stream event type: {event_type!r}",
            key="type",
            type_=str(event_type),
        )
    try:
        return model.model_validate(obj)
    except ValidationError as e:
        raise decode_error_from_validation(
            e, what=f"{event_type!r} event", type_=event_type
        ) from e
