"""Message structures for prompts."""

from __future__ import annotations

from typing import Any
from pydantic import BaseModel, Field, model_validator

from .constants import Role, ContentType, ImageMediaType


class PromptMessage(BaseModel):
    """Domain representation of a single semantic message in a conversation.

    This class is the only place that knows how to convert a semantic
    message into a Messages API message dictionary. It enforces
    invariants depending on the message type.
    """

    role: Role | None = None
    """The role of the message sender.

    Options: `user`, `assistant`. Tool uses are always sent as `assistant`
    and tool results as `user`.
    """

    content_type: ContentType
    """The type of content.

    Options: `text`, `image`, `tool_use`, `tool_result`
    """

    text: str | None = None
    """The text content of the message."""

    media_type: ImageMediaType | None = None
    """The media type of a base64 image."""

    data: str | None = None
    """Base64-encoded image data, encoded by the caller."""

    tool_use_id: str | None = None
    """The ID of the tool use (for `tool_use` and `tool_result`)."""

    name: str | None = None
    """The name of the tool."""

    input: dict[str, Any] = Field(default_factory=dict)
    """The arguments of a tool use."""

    output: str | None = None
    """The output of the tool execution."""

    is_error: bool = False
    """Whether the tool execution failed."""

    @model_validator(mode="after")
    def _validate_invariants(self) -> PromptMessage:
        """Enforce invariants so that invalid messages are never constructed.

        Raises:
            ValueError: If required fields are missing for the given content_type.
        """
        if self.content_type == "text":
            if self.role is None:
                raise ValueError("role is required for text messages")
            if not isinstance(self.text, str):
                raise ValueError("text is required for text messages")

        elif self.content_type == "image":
            if self.role not in (None, "user"):
                raise ValueError("images can only be sent by the user")
            if not self.data or self.media_type is None:
                raise ValueError("data and media_type are required for images")
            self.role = "user"

        # Tool use (model -> caller), echoed back in the history
        elif self.content_type == "tool_use":
            if not self.tool_use_id:
                raise ValueError("tool_use_id is required for tool_use")
            if not self.name:
                raise ValueError("name is required for tool_use")
            self.role = "assistant"

        # Tool result (caller -> model)
        elif self.content_type == "tool_result":
            if not self.tool_use_id:
                raise ValueError("tool_use_id is required for tool_result")
            if not isinstance(self.output, str):
                raise ValueError("output must be a string")
            self.role = "user"

        return self

    def convert_to_anthropic_block(self) -> dict[str, Any]:
        """Convert the message content to a single Messages API content block."""
        if self.content_type == "text":
            return {"type": "text", "text": self.text}

        if self.content_type == "image":
            return {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": self.media_type,
                    "data": self.data,
                },
            }

        if self.content_type == "tool_use":
            return {
                "type": "tool_use",
                "id": self.tool_use_id,
                "name": self.name,
                "input": self.input,
            }

        block: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": self.output,
        }
        if self.is_error:
            block["is_error"] = True
        return block

    def convert_to_anthropic_message(self) -> dict[str, Any]:
        """Convert the PromptMessage to a Messages API message dictionary.

        Returns:
            dict[str, Any]: The formatted message dictionary.
        """
        return {"role": self.role, "content": [self.convert_to_anthropic_block()]}
