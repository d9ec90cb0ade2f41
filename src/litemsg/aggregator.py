"""State machine that assembles a message from streamed delta events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .constants import TERMINAL_STATUSES, StreamStatus
from .content import (
    ContentBlock,
    InvalidToolUseBlock,
    PartialTextBlock,
    PartialToolUseBlock,
    TextBlock,
    ToolUseBlock,
)
from .dynamic import DynamicValue, load_json
from .errors import (
    APIStatusError,
    Cancelled,
    DecodeError,
    LitemsgError,
    PartialBlockFailure,
    ProtocolViolation,
    StreamError,
)
from .events import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    ErrorEvent,
    InputJsonDelta,
    MessageDeltaEvent,
    MessageStartEvent,
    MessageStopEvent,
    PingEvent,
    StreamEvent,
    TextDelta,
    decode_stream_event,
)
from .response import Message
from .results import StreamResult, StreamUpdate
from .sse import ServerSentEvent

logger = logging.getLogger(__name__)

_TYPED_EVENTS = (
    MessageStartEvent,
    ContentBlockStartEvent,
    ContentBlockDeltaEvent,
    ContentBlockStopEvent,
    MessageDeltaEvent,
    MessageStopEvent,
    PingEvent,
    ErrorEvent,
)


class StreamAggregator:
    """Builds a ``Message`` from the events of one streamed response.

    The aggregator is both a builder and a pass-through notifier: every
    processed event produces a ``StreamUpdate`` that is handed to
    `on_event` and returned from ``feed``.

    States::

        idle -> started -> streaming -> completed
                  any non-terminal   -> failed | cancelled

    Events must be fed in arrival order from a single producer. Instances
    are not thread-safe and must not be shared between streams.

    Args:
        on_event: Optional callback invoked with each ``StreamUpdate``.
        strict_blocks: When True, a tool-use block whose input fails to
            parse fails the whole stream instead of only that block.
    """

    def __init__(
        self,
        on_event: Callable[[StreamUpdate], None] | None = None,
        *,
        strict_blocks: bool = False,
    ) -> None:
        self._on_event = on_event
        self._strict_blocks = strict_blocks
        self._status = StreamStatus.IDLE
        self._message: Message | None = None
        self._blocks: list[ContentBlock] = []
        self._open: set[int] = set()
        self._seed_inputs: dict[int, dict[str, DynamicValue]] = {}
        self._failures: list[PartialBlockFailure] = []
        self._error: LitemsgError | None = None

    @property
    def status(self) -> StreamStatus:
        return self._status

    @property
    def done(self) -> bool:
        """Whether the stream reached a terminal state."""
        return self._status in TERMINAL_STATUSES

    @property
    def error(self) -> LitemsgError | None:
        return self._error

    @property
    def failures(self) -> list[PartialBlockFailure]:
        return list(self._failures)

    def snapshot(self) -> Message | None:
        """The envelope as assembled so far, or ``None`` before ``message_start``."""
        return self._message

    def feed(
        self, event: StreamEvent | ServerSentEvent | dict[str, Any] | str | bytes
    ) -> StreamUpdate | None:
        """Process one event.

        Raw payloads and ``ServerSentEvent``s are decoded first; a payload
        that fails to decode fails the stream. Protocol violations fail the
        stream as well instead of raising, so the outcome is always
        available from ``result()``.

        Returns:
            StreamUpdate | None: The update for this event, or ``None`` if the
            stream had already reached a terminal state.
        """
        if self.done:
            logger.debug("Ignoring event after stream %s", self._status.value)
            return None

        if not isinstance(event, _TYPED_EVENTS):
            try:
                event = self._decode(event)
            except DecodeError as e:
                return self._fail(e, None)

        try:
            self._dispatch(event)
        except (StreamError, PartialBlockFailure) as e:
            return self._fail(e, event)
        return self._emit(event.type, event)

    def fail(self, error: LitemsgError) -> StreamUpdate | None:
        """Fail the stream with an error raised outside the aggregator.

        This is how the transport reports a broken connection or timeout.
        """
        if self.done:
            return None
        return self._fail(error, None)

    def cancel(self, reason: str | None = None) -> StreamUpdate | None:
        """Stop the stream on the caller's request.

        The partially assembled envelope stays available through
        ``result().partial``.
        """
        if self.done:
            return None
        self._status = StreamStatus.CANCELLED
        self._error = Cancelled(reason or "Stream cancelled by caller")
        logger.warning("Stream cancelled: %s", self._error)
        return self._emit("cancelled", None)

    def result(self) -> StreamResult:
        """The outcome so far. ``message`` is set only once completed."""
        completed = self._status == StreamStatus.COMPLETED
        return StreamResult(
            status=self._status,
            message=self._message if completed else None,
            partial=None if completed else self._message,
            error=self._error,
            failures=list(self._failures),
        )

    def final_message(self) -> Message:
        """Return the completed envelope.

        Raises:
            LitemsgError: The error that ended the stream.
            ProtocolViolation: If the stream has not finished yet.
        """
        if self._status == StreamStatus.COMPLETED and self._message is not None:
            return self._message
        if self._error is not None:
            raise self._error
        raise ProtocolViolation(f"Stream has not finished (status: {self._status.value})")

    # Internals

    @staticmethod
    def _decode(raw: ServerSentEvent | dict[str, Any] | str | bytes) -> StreamEvent:
        if isinstance(raw, ServerSentEvent):
            return decode_stream_event(raw.data, raw.event)
        return decode_stream_event(raw)

    def _dispatch(self, event: StreamEvent) -> None:
        if isinstance(event, MessageStartEvent):
            self._on_message_start(event)
        elif isinstance(event, ContentBlockStartEvent):
            self._on_block_start(event)
        elif isinstance(event, ContentBlockDeltaEvent):
            self._on_block_delta(event)
        elif isinstance(event, ContentBlockStopEvent):
            self._on_block_stop(event)
        elif isinstance(event, MessageDeltaEvent):
            self._on_message_delta(event)
        elif isinstance(event, MessageStopEvent):
            self._on_message_stop()
        elif isinstance(event, PingEvent):
            logger.debug("Ping")
        elif isinstance(event, ErrorEvent):
            raise APIStatusError(
                event.error.message or event.error.type,
                error_type=event.error.type,
                body=event.model_dump(),
            )

    def _require_started(self, event_type: str) -> Message:
        if self._message is None:
            raise ProtocolViolation(f"{event_type} received before message_start")
        return self._message

    def _open_block(self, index: int, event_type: str) -> ContentBlock:
        if index not in self._open:
            if 0 <= index < len(self._blocks):
                raise ProtocolViolation(
                    f"{event_type} for content block {index}, which is already stopped"
                )
            raise ProtocolViolation(
                f"{event_type} for content block {index}, which was never started"
            )
        return self._blocks[index]

    def _set_block(self, index: int, block: ContentBlock) -> None:
        self._blocks[index] = block
        self._publish()

    def _publish(self, **changes: Any) -> None:
        # Snapshots handed out earlier keep their own content list.
        message = self._require_started("update")
        self._message = message.model_copy(
            update={"content": tuple(self._blocks), **changes}
        )

    def _on_message_start(self, event: MessageStartEvent) -> None:
        if self._status != StreamStatus.IDLE:
            raise ProtocolViolation("message_start received twice")
        if event.message.content:
            raise ProtocolViolation(
                "message_start carries content blocks, expected none"
            )
        if event.message.stop_reason is not None:
            raise ProtocolViolation(
                f"message_start carries stop_reason {event.message.stop_reason!r}"
            )
        self._message = event.message
        self._blocks = []
        self._status = StreamStatus.STARTED
        logger.debug("Stream started: message %s (%s)", event.message.id, event.message.model)

    def _on_block_start(self, event: ContentBlockStartEvent) -> None:
        self._require_started(event.type)
        expected = len(self._blocks)
        if event.index != expected:
            raise ProtocolViolation(
                f"content_block_start for index {event.index}, expected {expected}"
            )
        seed = event.content_block
        if isinstance(seed, TextBlock):
            block: ContentBlock = PartialTextBlock(text=seed.text)
        else:
            block = PartialToolUseBlock(id=seed.id, name=seed.name)
            self._seed_inputs[event.index] = seed.input
        self._blocks.append(block)
        self._open.add(event.index)
        self._status = StreamStatus.STREAMING
        self._publish()
        logger.debug("Content block %d opened (%s)", event.index, seed.type)

    def _on_block_delta(self, event: ContentBlockDeltaEvent) -> None:
        self._require_started(event.type)
        block = self._open_block(event.index, event.type)
        delta = event.delta
        if isinstance(delta, TextDelta) and isinstance(block, PartialTextBlock):
            updated = block.model_copy(update={"text": block.text + delta.text})
        elif isinstance(delta, InputJsonDelta) and isinstance(block, PartialToolUseBlock):
            updated = block.model_copy(
                update={"partial_json": block.partial_json + delta.partial_json}
            )
        else:
            raise ProtocolViolation(
                f"{delta.type} does not apply to {block.type} block {event.index}"
            )
        self._set_block(event.index, updated)

    def _on_block_stop(self, event: ContentBlockStopEvent) -> None:
        self._require_started(event.type)
        block = self._open_block(event.index, event.type)
        self._open.discard(event.index)
        if isinstance(block, PartialTextBlock):
            self._set_block(event.index, TextBlock(text=block.text))
        elif isinstance(block, PartialToolUseBlock):
            self._finish_tool_use(event.index, block)
        logger.debug("Content block %d stopped", event.index)

    def _finish_tool_use(self, index: int, block: PartialToolUseBlock) -> None:
        seed_input = self._seed_inputs.pop(index, {})
        raw = block.partial_json
        try:
            if raw.strip():
                parsed = load_json(raw)
                if not isinstance(parsed, dict):
                    raise DecodeError(
                        f"tool_use input must be a JSON object, got {type(parsed).__name__}",
                        key="input",
                        type_="tool_use",
                    )
            else:
                parsed = seed_input
            self._set_block(
                index, ToolUseBlock(id=block.id, name=block.name, input=parsed)
            )
        except DecodeError as e:
            failure = PartialBlockFailure(
                f"tool_use block {index} ({block.name}) has invalid input: {e}",
                index=index,
                raw=raw,
            )
            self._failures.append(failure)
            self._set_block(
                index,
                InvalidToolUseBlock(
                    id=block.id, name=block.name, partial_json=raw, error=str(e)
                ),
            )
            logger.warning("%s", failure)
            if self._strict_blocks:
                raise failure from e

    def _on_message_delta(self, event: MessageDeltaEvent) -> None:
        message = self._require_started(event.type)
        changes: dict[str, Any] = {"usage": message.usage.merge(event.usage)}
        # Only fields the server actually sent are applied.
        for name in ("stop_reason", "stop_sequence"):
            if name in event.delta.model_fields_set:
                changes[name] = getattr(event.delta, name)
        self._publish(**changes)

    def _on_message_stop(self) -> None:
        message = self._require_started("message_stop")
        if self._open:
            raise ProtocolViolation(
                f"message_stop with content blocks still open: {sorted(self._open)}"
            )
        if message.stop_reason is None:
            raise ProtocolViolation("message_stop received before any stop_reason")
        self._status = StreamStatus.COMPLETED
        logger.debug(
            "Stream completed: message %s, stop_reason=%s", message.id, message.stop_reason
        )

    def _fail(self, error: LitemsgError, event: StreamEvent | None) -> StreamUpdate:
        self._status = StreamStatus.FAILED
        self._error = error
        logger.warning("Stream failed: %s: %s", type(error).__name__, error)
        return self._emit(event.type if event is not None else "error", event)

    def _emit(self, event_type: str, event: StreamEvent | None) -> StreamUpdate:
        update = StreamUpdate(
            event_type=event_type,
            event=event,
            snapshot=self._message,
            status=self._status,
            error=self._error,
        )
        if self._on_event is not None:
            self._on_event(update)
        return update
