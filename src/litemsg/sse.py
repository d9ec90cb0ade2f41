"""Minimal Server-Sent-Events framing over a line iterator."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServerSentEvent:
    """One dispatched SSE event."""

    event: str | None = None
    data: str = ""
    id: str | None = None
    retry: int | None = None


@dataclass
class SSEDecoder:
    """Incremental decoder fed one line at a time (without the line ending)."""

    _event: str | None = None
    _data: list[str] = field(default_factory=list)
    _id: str | None = None
    _retry: int | None = None

    def decode(self, line: str) -> ServerSentEvent | None:
        """Consume one line and return an event when a blank line ends one."""
        line = line.rstrip("\r\n")
        if not line:
            return self.flush()

        if line.startswith(":"):
            return None

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        elif name == "id":
            if "\0" not in value:
                self._id = value
        elif name == "retry":
            if value.isdigit():
                self._retry = int(value)
        return None

    def flush(self) -> ServerSentEvent | None:
        """Dispatch the pending event.

        A frame without any ``data`` line is discarded, as browsers do.
        """
        event, data, retry = self._event, self._data, self._retry
        # The last event id persists across events.
        self._event = None
        self._data = []
        self._retry = None
        if not data:
            return None
        return ServerSentEvent(event=event, data="\n".join(data), id=self._id, retry=retry)


def iter_sse(lines: Iterable[str]) -> Iterator[ServerSentEvent]:
    """Yield events from an iterable of text lines.

    An event is dispatched only by the blank line that ends it; an
    unterminated frame at end of input is dropped.
    """
    decoder = SSEDecoder()
    for line in lines:
        sse = decoder.decode(line)
        if sse is not None:
            yield sse


async def aiter_sse(lines: AsyncIterable[str]) -> AsyncIterator[ServerSentEvent]:
    """Yield events from an async iterable of text lines."""
    decoder = SSEDecoder()
    async for line in lines:
        sse = decoder.decode(line)
        if sse is not None:
            yield sse
