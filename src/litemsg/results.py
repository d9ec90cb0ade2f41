"""Values handed to callers while and after a stream is aggregated."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .constants import StreamStatus
from .errors import LitemsgError, PartialBlockFailure
from .events import StreamEvent
from .response import Message


class StreamUpdate(BaseModel):
    """Emitted once for every event the aggregator processes.

    Used for live rendering: ``snapshot`` is the envelope as it stands
    after the event, with unfinished blocks shown as partial variants.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    event_type: str
    """The wire event name, or ``cancelled`` for a caller cancellation."""

    event: StreamEvent | None = None
    """The typed event, when there was one."""

    snapshot: Message | None = None
    """The envelope so far. ``None`` until ``message_start`` arrives."""

    status: StreamStatus
    """Aggregator status after the event."""

    error: LitemsgError | None = None
    """The terminal error, once the stream has failed or been cancelled."""

    @property
    def text_delta(self) -> str | None:
        """The text appended by this event, if it was a text delta."""
        if self.event is None or self.event.type != "content_block_delta":
            return None
        return getattr(self.event.delta, "text", None)


class StreamResult(BaseModel):
    """Final outcome of an aggregated stream.

    ``message`` is set only when the stream completed normally. A failed or
    cancelled stream keeps whatever had arrived in ``partial``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: StreamStatus
    """Terminal (or current) aggregator status."""

    message: Message | None = None
    """The finished envelope. ``None`` unless ``status`` is ``completed``."""

    partial: Message | None = None
    """The last snapshot of an unfinished stream."""

    error: LitemsgError | None = None
    """Why the stream did not complete."""

    failures: list[PartialBlockFailure] = Field(default_factory=list)
    """Tool-use blocks whose input could not be parsed."""

    @property
    def completed(self) -> bool:
        return self.status == StreamStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status == StreamStatus.CANCELLED
