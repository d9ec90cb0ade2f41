"""Message envelope and token usage returned by the Messages API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, StrictInt, ValidationError, field_validator

from .constants import StopReason
from .content import (
    ContentBlock,
    ToolUseBlock,
    decode_content_block,
    encode_content_block,
)
from .dynamic import load_json
from .errors import DecodeError, decode_error_from_validation


class Usage(BaseModel):
    """Token accounting for a response.

    Absent counters are ``None`` and never coerced to ``0``: an explicit zero
    cache read and an unreported one mean different things.
    """

    model_config = ConfigDict(frozen=True)

    input_tokens: StrictInt | None = None
    """The number of input tokens which were used."""

    output_tokens: StrictInt
    """The number of output tokens which were used."""

    cache_creation_input_tokens: StrictInt | None = None
    """Input tokens written to the prompt cache."""

    cache_read_input_tokens: StrictInt | None = None
    """Input tokens served from the prompt cache."""

    def merge(self, update: Usage | None) -> Usage:
        """Return a copy with every counter reported in `update` replaced.

        Counters are re-reported as a stream progresses, so the latest value
        wins and counters missing from `update` are kept.
        """
        if update is None:
            return self
        return self.model_copy(update=update.model_dump(exclude_none=True))

    @property
    def cache_hit_rate(self) -> float | None:
        """Share of the prompt served from cache, or ``None`` if unknown."""
        if self.input_tokens is None or self.cache_read_input_tokens is None:
            return None
        total = (
            self.input_tokens
            + (self.cache_creation_input_tokens or 0)
            + self.cache_read_input_tokens
        )
        if total == 0:
            return None
        return self.cache_read_input_tokens / total

    def to_wire(self) -> dict[str, Any]:
        """Encode to the wire shape, leaving out absent counters."""
        return self.model_dump(exclude_none=True)


class Message(BaseModel):
    """A complete (or, while streaming, partially built) model response."""

    model_config = ConfigDict(frozen=True)

    id: str
    """Opaque message identifier. The format may change over time."""

    type: Literal["message"]
    """Object type. Always ``message``."""

    model: str
    """The model that handled the request."""

    role: Literal["assistant"]
    """Conversational role of the generated message."""

    content: tuple[ContentBlock, ...]
    """Content blocks in generation order."""

    stop_reason: StopReason | None = None
    """Why generation ended. ``None`` only while a stream is in progress."""

    stop_sequence: str | None = None
    """The custom stop sequence that was generated, if any."""

    usage: Usage
    """Token usage."""

    @field_validator("content", mode="before")
    @classmethod
    def _decode_content(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return value
        return [
            block if isinstance(block, BaseModel) else decode_content_block(block)
            for block in value
        ]

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(block.text for block in self.content if block.type == "text")

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        """Well-formed tool invocations, in order."""
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    @property
    def failed_blocks(self) -> list[int]:
        """Indices of tool-use blocks whose input could not be parsed."""
        return [i for i, block in enumerate(self.content) if not block.is_valid]

    @property
    def is_complete(self) -> bool:
        return self.stop_reason is not None and not any(
            block.is_partial for block in self.content
        )

    def to_wire(self) -> dict[str, Any]:
        """Encode to the wire shape.

        Raises:
            TypeError: If the message still holds partial or invalid blocks.
        """
        data = self.model_dump(mode="json", exclude={"content", "usage"})
        data["content"] = [encode_content_block(block) for block in self.content]
        data["usage"] = self.usage.to_wire()
        return data


class DecodeResult(BaseModel):
    """Outcome of decoding one response without raising."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    message: Message | None = None
    error: DecodeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def decode_message(data: bytes | str | dict[str, Any]) -> Message:
    """Decode a non-streaming Messages API response.

    Args:
        data: Raw JSON bytes or text, or an already-parsed JSON object.

    Returns:
        Message: The decoded envelope.

    Raises:
        DecodeError: If the payload is not JSON, or ``id``, ``type``,
            ``model``, ``role``, ``content`` or ``usage`` is missing or
            wrongly shaped.
    """
    obj = load_json(data) if isinstance(data, (bytes, bytearray, str)) else data
    if not isinstance(obj, dict):
        raise DecodeError(f"Message must be a JSON object, got {type(obj).__name__}")
    try:
        return Message.model_validate(obj)
    except ValidationError as e:
        raise decode_error_from_validation(e, what="message") from e


def decode_message_result(data: bytes | str | dict[str, Any]) -> DecodeResult:
    """Like ``decode_message`` but returns the failure instead of raising."""
    try:
        return DecodeResult(message=decode_message(data))
    except DecodeError as e:
        return DecodeResult(error=e)
