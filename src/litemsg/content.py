"""Content blocks: the units of model output inside a message."""

from __future__ import annotations

from typing import Any, ClassVar, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    field_serializer,
    field_validator,
)

from .dynamic import DynamicValue, decode_dynamic, encode_dynamic
from .errors import DecodeError, decode_error_from_validation


class TextBlock(BaseModel):
    """A span of generated text."""

    model_config = ConfigDict(frozen=True)

    is_partial: ClassVar[bool] = False
    is_valid: ClassVar[bool] = True

    type: Literal["text"] = "text"
    """Block discriminator."""

    text: str
    """The generated text."""


class ToolUseBlock(BaseModel):
    """A structured tool invocation requested by the model.

    ``input`` is always a JSON object at the top level; each of its values
    is decoded into a ``DynamicValue`` independently.
    """

    model_config = ConfigDict(frozen=True)

    is_partial: ClassVar[bool] = False
    is_valid: ClassVar[bool] = True

    type: Literal["tool_use"] = "tool_use"
    """Block discriminator."""

    id: str
    """Identifier used to match a later ``tool_result``."""

    name: str
    """The name of the tool to call."""

    input: dict[str, DynamicValue]
    """The tool arguments."""

    @field_validator("input", mode="before")
    @classmethod
    def _decode_input(cls, value: Any) -> dict[str, DynamicValue]:
        if not isinstance(value, dict):
            raise DecodeError(
                "tool_use input must be a JSON object", key="input", type_="tool_use"
            )
        return {key: decode_dynamic(item) for key, item in value.items()}

    @field_serializer("input")
    def _encode_input(self, value: dict[str, DynamicValue]) -> dict[str, Any]:
        return {key: encode_dynamic(item) for key, item in value.items()}

    @property
    def arguments(self) -> dict[str, Any]:
        """The tool arguments as plain Python values."""
        return {key: encode_dynamic(item) for key, item in self.input.items()}


class PartialTextBlock(BaseModel):
    """A text block that is still receiving deltas."""

    model_config = ConfigDict(frozen=True)

    is_partial: ClassVar[bool] = True
    is_valid: ClassVar[bool] = True

    type: Literal["text"] = "text"
    text: str = ""


class PartialToolUseBlock(BaseModel):
    """A tool-use block whose input JSON is still arriving in fragments."""

    model_config = ConfigDict(frozen=True)

    is_partial: ClassVar[bool] = True
    is_valid: ClassVar[bool] = True

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    partial_json: str = ""
    """Concatenation of the fragments received so far. Not valid JSON until
    the block is stopped."""


class InvalidToolUseBlock(BaseModel):
    """A finished tool-use block whose accumulated input failed to parse."""

    model_config = ConfigDict(frozen=True)

    is_partial: ClassVar[bool] = False
    is_valid: ClassVar[bool] = False

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    partial_json: str
    error: str


ContentBlock = Union[
    TextBlock,
    ToolUseBlock,
    PartialTextBlock,
    PartialToolUseBlock,
    InvalidToolUseBlock,
]

_BLOCK_TYPES: dict[str, type[TextBlock] | type[ToolUseBlock]] = {
    "text": TextBlock,
    "tool_use": ToolUseBlock,
}


def decode_content_block(obj: Any) -> TextBlock | ToolUseBlock:
    """Decode one wire content block.

    Args:
        obj: The parsed JSON object.

    Returns:
        TextBlock | ToolUseBlock: The decoded block.

    Raises:
        DecodeError: If the discriminator is missing or unknown, or a field
            required by the matched variant is missing or mistyped.
    """
    if isinstance(obj, (TextBlock, ToolUseBlock)):
        return obj
    if not isinstance(obj, dict):
        raise DecodeError(
            f"Content block must be a JSON object, got {type(obj).__name__}"
        )
    block_type = obj.get("type")
    if block_type is None:
        raise DecodeError("Content block is missing 'type'", key="type")
    model = _BLOCK_TYPES.get(block_type) if isinstance(block_type, str) else None
    if model is None:
        raise DecodeError(
            f"Unknown content block type: {block_type!r}",
            key="type",
            type_=str(block_type),
        )
    try:
        return model.model_validate(obj)
    except ValidationError as e:
        raise decode_error_from_validation(
            e, what=f"{block_type!r} content block", type_=block_type
        ) from e


def encode_content_block(block: ContentBlock) -> dict[str, Any]:
    """Encode a finished block to its wire shape, discriminator first.

    Raises:
        TypeError: If `block` is partial or invalid.
    """
    if not isinstance(block, (TextBlock, ToolUseBlock)):
        raise TypeError(f"{type(block).__name__} cannot be encoded to the wire")
    return block.model_dump(mode="json")
