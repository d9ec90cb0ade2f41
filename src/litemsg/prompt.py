"""Template management for constructing prompts."""

from __future__ import annotations

from typing import Iterable, Any
from pydantic import BaseModel, PrivateAttr

from .constants import ImageMediaType
from .content import TextBlock, ToolUseBlock
from .message import PromptMessage
from .response import Message


class PromptTemplate(BaseModel):
    """Container for conversation state.

    This class stores the message history sent to the model. It manages
    ``PromptMessage`` objects and serializes them only at the Messages API
    boundary. System text is kept apart since the API takes it as a
    separate parameter.
    """

    _system: list[str] = PrivateAttr(default_factory=list)
    """System prompt parts, joined on conversion."""

    _messages: list[PromptMessage] = PrivateAttr(default_factory=list)
    """List of messages in the prompt template."""

    @property
    def messages(self) -> list[PromptMessage]:
        """Return a read-only view of the messages."""
        return self._messages

    @property
    def system(self) -> str | None:
        """The combined system prompt, if any."""
        return "\n\n".join(self._system) or None

    def add_message(self, message: PromptMessage) -> PromptTemplate:
        """Add a custom prompt message.

        Args:
            message: The message to add.

        Returns:
            ``PromptTemplate``: The template instance, allowing method chaining.

        Raises:
            TypeError: If `message` is not a ``PromptMessage`` instance.
        """
        if not isinstance(message, PromptMessage):
            raise TypeError("Expected PromptMessage")
        self._messages.append(message)
        return self

    def add_messages(self, messages: Iterable[PromptMessage]) -> PromptTemplate:
        """Add multiple prompt messages."""
        for message in messages:
            self.add_message(message)
        return self

    def add_system(self, text: str) -> PromptTemplate:
        """Add system prompt text.

        Args:
            text: The system message text.

        Returns:
            ``PromptTemplate``: The template instance, allowing method chaining.
        """
        self._system.append(text)
        return self

    def add_user(self, text: str) -> PromptTemplate:
        """Add a user message."""
        return self.add_message(PromptMessage(role="user", content_type="text", text=text))

    def add_assistant(self, text: str) -> PromptTemplate:
        """Add an assistant message.

        Ending the template with an assistant message makes the model
        continue from that text.
        """
        return self.add_message(
            PromptMessage(role="assistant", content_type="text", text=text)
        )

    def add_image(self, data: str, media_type: ImageMediaType) -> PromptTemplate:
        """Add a base64 image to the user turn.

        Args:
            data: Base64-encoded image bytes.
            media_type: The image media type, e.g. ``image/png``.
        """
        return self.add_message(
            PromptMessage(content_type="image", data=data, media_type=media_type)
        )

    def add_tool_use(
        self,
        *,
        tool_use_id: str,
        name: str,
        input: dict[str, Any],
    ) -> PromptTemplate:
        """Echo a tool use made by the model back into the history.

        Args:
            tool_use_id: The ID the model gave the tool use.
            name: The name of the tool.
            input: The tool arguments as plain Python values.
        """
        return self.add_message(
            PromptMessage(
                content_type="tool_use",
                tool_use_id=tool_use_id,
                name=name,
                input=input,
            )
        )

    def add_tool_result(
        self,
        *,
        tool_use_id: str,
        output: str,
        is_error: bool = False,
    ) -> PromptTemplate:
        """Add the result of a tool execution.

        Args:
            tool_use_id: The ID of the tool use this result answers.
            output: The output produced by the tool.
            is_error: Whether the tool failed.
        """
        return self.add_message(
            PromptMessage(
                content_type="tool_result",
                tool_use_id=tool_use_id,
                output=output,
                is_error=is_error,
            )
        )

    def add_response(self, message: Message) -> PromptTemplate:
        """Append a decoded assistant response to the history.

        Raises:
            ValueError: If the message holds partial or invalid blocks.
        """
        for block in message.content:
            if isinstance(block, TextBlock):
                self.add_assistant(block.text)
            elif isinstance(block, ToolUseBlock):
                self.add_tool_use(
                    tool_use_id=block.id, name=block.name, input=block.arguments
                )
            else:
                raise ValueError(
                    f"Cannot add {type(block).__name__} to the conversation history"
                )
        return self

    def copy(self) -> PromptTemplate:
        """Create a shallow copy of this template.

        Returns:
            ``PromptTemplate``: A new template containing the same messages.
        """
        new = PromptTemplate()
        new._system = list(self._system)
        new._messages = list(self._messages)
        return new

    def convert_to_anthropic_input(self) -> tuple[str | None, list[dict[str, Any]]]:
        """Convert the template to the Messages API ``system`` and ``messages``.

        Consecutive messages from the same role are merged into one message,
        since the API expects user and assistant turns to alternate.

        Returns:
            tuple[str | None, list[dict[str, Any]]]: The system prompt and the
            formatted messages.
        """
        messages: list[dict[str, Any]] = []
        for msg in self._messages:
            if messages and messages[-1]["role"] == msg.role:
                messages[-1]["content"].append(msg.convert_to_anthropic_block())
            else:
                messages.append(msg.convert_to_anthropic_message())
        return self.system, messages

    def __len__(self) -> int:
        """Return the number of messages in the template."""
        return len(self._messages)

    def __iter__(self):
        """Iterate over stored messages."""
        return iter(self._messages)
