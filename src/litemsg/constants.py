"""Constants and Enums for the litemsg package."""

from __future__ import annotations

from enum import Enum
from typing import Literal

Role = Literal["user", "assistant"]

ContentType = Literal[
    "text",
    "image",
    "tool_use",
    "tool_result",
]

StopReason = Literal["end_turn", "max_tokens", "stop_sequence", "tool_use"]

StreamEventType = Literal[
    "message_start",
    "content_block_start",
    "content_block_delta",
    "content_block_stop",
    "message_delta",
    "message_stop",
    "ping",
    "error",
]

ImageMediaType = Literal["image/jpeg", "image/png", "image/gif", "image/webp"]

ToolChoice = Literal["auto", "any", "none"]


class StreamStatus(str, Enum):
    IDLE = "idle"
    STARTED = "started"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {StreamStatus.COMPLETED, StreamStatus.FAILED, StreamStatus.CANCELLED}
)

DEFAULT_MODEL = "claude-3-5-sonnet-latest"
DEFAULT_MAX_TOKENS = 1024
DEFAULT_MAX_RETRIES = 2
DEFAULT_TIMEOUT = 600.0  # seconds
DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_API_VERSION = "2023-06-01"
MESSAGES_PATH = "/v1/messages"
