"""LLM client wrapper and configuration."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import Any

import httpx
from pydantic import BaseModel, Field, PrivateAttr, model_validator

from .aggregator import StreamAggregator
from .dynamic import load_json
from .errors import APIStatusError, DecodeError, TransportError
from .prompt import PromptTemplate
from .response import Message, decode_message
from .results import StreamUpdate
from .streaming import AsyncMessageStream, MessageStream
from .tool import Tool
from .constants import (
    ToolChoice,
    DEFAULT_MODEL,
    DEFAULT_TIMEOUT,
    DEFAULT_BASE_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_API_VERSION,
    MESSAGES_PATH,
)

logger = logging.getLogger(__name__)


class ChatAnthropic(BaseModel):
    """Stateless wrapper for a configured Claude model.

    Provides a unified interface to call the Messages API, optionally
    binding tools and streaming outputs.
    """

    model: str = DEFAULT_MODEL
    """The model name to use."""

    max_tokens: int = DEFAULT_MAX_TOKENS
    """Maximum number of tokens to generate."""

    temperature: float | None = None
    """Sampling temperature for the model."""

    top_p: float | None = None
    """Nucleus sampling threshold."""

    top_k: int | None = None
    """Only sample from the top K options for each token."""

    stop_sequences: list[str] | None = None
    """Custom sequences that stop generation."""

    system: str | None = None
    """Default system prompt, used when the messages carry none."""

    api_key: str | None = None
    """API key. Defaults to the ``ANTHROPIC_API_KEY`` environment variable."""

    base_url: str | None = None
    """Custom base URL. Defaults to ``ANTHROPIC_BASE_URL`` or the public API."""

    anthropic_version: str = DEFAULT_API_VERSION
    """Value of the ``anthropic-version`` header."""

    timeout: float | None = DEFAULT_TIMEOUT
    """Request timeout in seconds."""

    max_retries: int = DEFAULT_MAX_RETRIES
    """Number of connection retries."""

    strict_blocks: bool = False
    """Fail a whole stream when one tool-use block has malformed input,
    instead of flagging only that block."""

    model_kwargs: dict[str, Any] = Field(default_factory=dict)
    """Additional request body parameters."""

    _client: httpx.Client = PrivateAttr()
    """Synchronous HTTP client."""

    _async_client: httpx.AsyncClient = PrivateAttr()
    """Asynchronous HTTP client."""

    _tools: list[Tool] | None = PrivateAttr(default=None)
    """List of bound tools."""

    _tool_choice: ToolChoice | None = PrivateAttr(default=None)
    """Tool selection strategy."""

    @model_validator(mode="after")
    def _validate_sampling(self) -> ChatAnthropic:
        """Validate sampling parameters."""
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be at least 1")
        if self.temperature is not None and not 0.0 <= self.temperature <= 1.0:
            raise ValueError("temperature must be between 0 and 1")
        return self

    @model_validator(mode="after")
    def _init_client(self) -> ChatAnthropic:
        """Initialize the HTTP clients."""
        if self.api_key is None:
            self.api_key = os.environ.get("ANTHROPIC_API_KEY")
        if self.base_url is None:
            self.base_url = os.environ.get("ANTHROPIC_BASE_URL", DEFAULT_BASE_URL)

        headers = {
            "anthropic-version": self.anthropic_version,
            "content-type": "application/json",
        }
        if self.api_key:
            headers["x-api-key"] = self.api_key

        client_kwargs = {
            "base_url": self.base_url,
            "headers": headers,
            "timeout": self.timeout,
        }
        self._client = httpx.Client(
            transport=httpx.HTTPTransport(retries=self.max_retries), **client_kwargs
        )
        self._async_client = httpx.AsyncClient(
            transport=httpx.AsyncHTTPTransport(retries=self.max_retries),
            **client_kwargs,
        )
        return self

    @property
    def client(self) -> httpx.Client:
        """Access the synchronous HTTP client."""
        return self._client

    @property
    def async_client(self) -> httpx.AsyncClient:
        """Access the asynchronous HTTP client."""
        return self._async_client

    @staticmethod
    def _convert_to_anthropic_tools(tools: list[Tool]) -> list[dict[str, Any]] | None:
        """Convert all registered tools to the Messages API tool format."""
        if not tools:
            return None
        return [tool.convert_to_anthropic_tool() for tool in tools]

    def bind_tools(
        self,
        *,
        tools: list[Tool],
        tool_choice: ToolChoice | None = None,
    ) -> ChatAnthropic:
        """Bind tools to the LLM instance.

        Args:
            tools: List of Tool instances to bind.
            tool_choice: Optional tool selection strategy.

        Returns:
            ``ChatAnthropic``: The updated instance with tools bound.
        """
        self._tools = tools
        self._tool_choice = tool_choice
        return self

    def _prepare_request_params(
        self,
        *,
        messages: PromptTemplate | list[dict[str, Any]],
        stream: bool,
        tools: list[Tool] | None,
        tool_choice: ToolChoice | None,
    ) -> dict[str, Any]:
        """Prepare the request body shared by sync and async calls."""
        if isinstance(messages, PromptTemplate):
            system, input_ = messages.convert_to_anthropic_input()
        else:
            system, input_ = None, messages

        params: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": input_,
            "stream": stream,
        }
        if system or self.system:
            params["system"] = system or self.system
        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.top_p is not None:
            params["top_p"] = self.top_p
        if self.top_k is not None:
            params["top_k"] = self.top_k
        if self.stop_sequences:
            params["stop_sequences"] = self.stop_sequences

        # Tools resolution
        active_tools = tools if tools is not None else self._tools
        current_tools = (
            self._convert_to_anthropic_tools(active_tools) if active_tools else None
        )
        if current_tools:
            params["tools"] = current_tools
            choice = tool_choice or self._tool_choice
            if choice is not None:
                params["tool_choice"] = {"type": choice}

        params.update(self.model_kwargs)
        logger.debug("Messages request: model=%s stream=%s", self.model, stream)
        return params

    @staticmethod
    def _status_error(response: httpx.Response) -> APIStatusError:
        """Build an ``APIStatusError`` from an already-read error response."""
        try:
            body = load_json(response.content)
        except DecodeError:
            body = response.text
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            error_type = error.get("type")
            message = error.get("message") or error_type or response.reason_phrase
        else:
            error_type = None
            message = response.reason_phrase or f"HTTP {response.status_code}"
        return APIStatusError(
            f"{response.status_code}: {message}",
            status_code=response.status_code,
            error_type=error_type,
            body=body,
        )

    def _new_aggregator(
        self, on_event: Callable[[StreamUpdate], None] | None
    ) -> StreamAggregator:
        return StreamAggregator(on_event, strict_blocks=self.strict_blocks)

    def chat(
        self,
        *,
        messages: PromptTemplate | list[dict[str, Any]],
        stream: bool = False,
        tools: list[Tool] | None = None,
        tool_choice: ToolChoice | None = None,
        on_event: Callable[[StreamUpdate], None] | None = None,
    ) -> Message | MessageStream:
        """Call the model synchronously.

        Args:
            messages: PromptTemplate or list of messages in Messages API format.
            stream: Whether to stream the output.
            tools: Optional list of Tool instances.
            tool_choice: Optional tool selection strategy.
            on_event: Callback for each stream update (streaming only).

        Returns:
            Message | MessageStream: The decoded message or an open stream.

        Raises:
            APIStatusError: If the server answers with an error status.
            TransportError: If the request could not be sent.
            DecodeError: If a non-streaming response body is malformed.
        """
        params = self._prepare_request_params(
            messages=messages, stream=stream, tools=tools, tool_choice=tool_choice
        )
        request = self.client.build_request("POST", MESSAGES_PATH, json=params)
        try:
            response = self.client.send(request, stream=stream)
        except httpx.HTTPError as e:
            raise TransportError(f"Request failed: {e}") from e

        if response.is_error:
            if stream:
                response.read()
                response.close()
            raise self._status_error(response)
        if stream:
            return MessageStream(response, self._new_aggregator(on_event))
        return decode_message(response.content)

    async def achat(
        self,
        *,
        messages: PromptTemplate | list[dict[str, Any]],
        stream: bool = False,
        tools: list[Tool] | None = None,
        tool_choice: ToolChoice | None = None,
        on_event: Callable[[StreamUpdate], None] | None = None,
    ) -> Message | AsyncMessageStream:
        """Call the model asynchronously.

        Args:
            messages: PromptTemplate or list of messages in Messages API format.
            stream: Whether to stream the output.
            tools: Optional list of Tool instances.
            tool_choice: Optional tool selection strategy.
            on_event: Callback for each stream update (streaming only).

        Returns:
            Message | AsyncMessageStream: The decoded message or an open stream.
        """
        params = self._prepare_request_params(
            messages=messages, stream=stream, tools=tools, tool_choice=tool_choice
        )
        request = self.async_client.build_request("POST", MESSAGES_PATH, json=params)
        try:
            response = await self.async_client.send(request, stream=stream)
        except httpx.HTTPError as e:
            raise TransportError(f"Request failed: {e}") from e

        if response.is_error:
            if stream:
                await response.aread()
                await response.aclose()
            raise self._status_error(response)
        if stream:
            return AsyncMessageStream(response, self._new_aggregator(on_event))
        return decode_message(response.content)

    def invoke(self, messages: list[dict[str, Any]] | PromptTemplate) -> Message:
        """Synchronously call the model.

        Args:
            messages: PromptTemplate or list of messages in Messages API format.

        Returns:
            Message: The decoded response.
        """
        return self.chat(messages=messages, stream=False)

    async def ainvoke(
        self, messages: list[dict[str, Any]] | PromptTemplate
    ) -> Message:
        """Asynchronously call the model."""
        return await self.achat(messages=messages, stream=False)

    def stream(
        self,
        messages: list[dict[str, Any]] | PromptTemplate,
        on_event: Callable[[StreamUpdate], None] | None = None,
    ) -> MessageStream:
        """Stream the model response synchronously.

        Args:
            messages: PromptTemplate or list of messages in Messages API format.
            on_event: Optional callback for each stream update.

        Returns:
            MessageStream: The open stream; iterate it for updates.
        """
        return self.chat(messages=messages, stream=True, on_event=on_event)

    async def astream(
        self,
        messages: list[dict[str, Any]] | PromptTemplate,
        on_event: Callable[[StreamUpdate], None] | None = None,
    ) -> AsyncMessageStream:
        """Stream the model response asynchronously."""
        return await self.achat(messages=messages, stream=True, on_event=on_event)

    def close(self) -> None:
        """Close the synchronous client."""
        self._client.close()

    async def aclose(self) -> None:
        """Close the asynchronous client."""
        await self._async_client.aclose()

    def __enter__(self) -> ChatAnthropic:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    async def __aenter__(self) -> ChatAnthropic:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
