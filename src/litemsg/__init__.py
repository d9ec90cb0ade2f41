from .llm import ChatAnthropic
from .tool import Tool
from .args_schema import ArgsSchema
from .prompt import PromptTemplate
from .message import PromptMessage
from .constants import Role, ContentType, StopReason, StreamEventType, StreamStatus
from .dynamic import (
    DynamicValue,
    StringValue,
    IntegerValue,
    FloatValue,
    BooleanValue,
    NullValue,
    ArrayValue,
    MapValue,
    decode_dynamic,
    encode_dynamic,
    parse_dynamic,
    dumps_dynamic,
)
from .content import (
    ContentBlock,
    TextBlock,
    ToolUseBlock,
    PartialTextBlock,
    PartialToolUseBlock,
    InvalidToolUseBlock,
    decode_content_block,
    encode_content_block,
)
from .response import Message, Usage, DecodeResult, decode_message, decode_message_result
from .events import StreamEvent, decode_stream_event
from .aggregator import StreamAggregator
from .results import StreamUpdate, StreamResult
from .streaming import MessageStream, AsyncMessageStream
from .errors import (
    LitemsgError,
    DecodeError,
    PartialBlockFailure,
    StreamError,
    ProtocolViolation,
    TransportError,
    APIStatusError,
    Cancelled,
)

__all__ = [
    "ChatAnthropic",
    "Tool", "ArgsSchema",
    "PromptTemplate", "PromptMessage",
    "Role", "ContentType", "StopReason", "StreamEventType", "StreamStatus",
    "DynamicValue",
    "StringValue", "IntegerValue", "FloatValue", "BooleanValue", "NullValue",
    "ArrayValue", "MapValue",
    "decode_dynamic", "encode_dynamic", "parse_dynamic", "dumps_dynamic",
    "ContentBlock", "TextBlock", "ToolUseBlock",
    "PartialTextBlock", "PartialToolUseBlock", "InvalidToolUseBlock",
    "decode_content_block", "encode_content_block",
    "Message", "Usage", "DecodeResult", "decode_message", "decode_message_result",
    "StreamEvent", "decode_stream_event",
    "StreamAggregator", "StreamUpdate", "StreamResult",
    "MessageStream", "AsyncMessageStream",
    "LitemsgError", "DecodeError", "PartialBlockFailure", "StreamError",
    "ProtocolViolation", "TransportError", "APIStatusError", "Cancelled",
]
