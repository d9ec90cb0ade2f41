"""Tool definitions advertised to the model."""

from __future__ import annotations

from typing import Any
from pydantic import BaseModel, model_validator

from .args_schema import ArgsSchema


class Tool(BaseModel):
    """Describes a tool the model may call.

    Only the definition lives here. When the model calls the tool, the
    call surfaces as a ``ToolUseBlock`` and dispatching it is up to the
    caller.
    """

    name: str
    """The name of the tool."""

    description: str = ""
    """A description of what the tool does."""

    args_schema: list[ArgsSchema] | None = None
    """The schema of the tool's input arguments."""

    input_schema: dict[str, Any] | None = None
    """A full JSON Schema for the input, used instead of `args_schema`."""

    @model_validator(mode="after")
    def _validate_schema(self) -> Tool:
        """Ensure at most one way of describing the input is used."""
        if self.args_schema and self.input_schema:
            raise ValueError("Provide either `args_schema` or `input_schema`, not both.")
        if self.input_schema is not None and self.input_schema.get("type") != "object":
            raise ValueError("`input_schema` must describe an object.")
        return self

    def _build_input_schema(self) -> dict[str, Any]:
        if self.input_schema is not None:
            return self.input_schema

        properties = {}
        required = []
        for arg in self.args_schema or []:
            properties[arg.name] = arg.convert_to_json_schema()
            if arg.required:
                required.append(arg.name)

        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }

    def convert_to_anthropic_tool(self) -> dict[str, Any]:
        """Convert the tool to the Messages API tool format.

        Returns:
            dict[str, Any]: The tool definition.
        """
        tool: dict[str, Any] = {
            "name": self.name,
            "input_schema": self._build_input_schema(),
        }
        if self.description:
            tool["description"] = self.description
        return tool
