"""Stream handles that drive an aggregator from an open HTTP response."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterator

import httpx

from .aggregator import StreamAggregator
from .errors import TransportError
from .response import Message
from .results import StreamResult, StreamUpdate
from .sse import aiter_sse, iter_sse


class MessageStream:
    """A streamed response being read synchronously.

    Iterate it to receive a ``StreamUpdate`` per event. The stream can be
    iterated only once; ``final_message()`` consumes whatever is left.

    Example:
        with llm.stream(prompt) as stream:
            for text in stream.text_stream:
                print(text, end="", flush=True)
            message = stream.final_message()
    """

    def __init__(self, response: httpx.Response, aggregator: StreamAggregator) -> None:
        self.response = response
        self.aggregator = aggregator
        self._updates = self._iter_updates()

    def __iter__(self) -> Iterator[StreamUpdate]:
        return self._updates

    def __next__(self) -> StreamUpdate:
        return next(self._updates)

    def _iter_updates(self) -> Iterator[StreamUpdate]:
        try:
            for sse in iter_sse(self.response.iter_lines()):
                update = self.aggregator.feed(sse)
                if update is not None:
                    yield update
                if self.aggregator.done:
                    break
        except (httpx.HTTPError, httpx.StreamError) as e:
            update = self.aggregator.fail(TransportError(f"Stream read failed: {e}"))
            if update is not None:
                yield update
        finally:
            self.response.close()

        if not self.aggregator.done:
            update = self.aggregator.fail(
                TransportError("Connection closed before message_stop")
            )
            if update is not None:
                yield update

    @property
    def text_stream(self) -> Iterator[str]:
        """Yield only the text fragments, in order."""
        for update in self:
            text = update.text_delta
            if text:
                yield text

    def until_done(self) -> None:
        """Consume the remaining events."""
        for _ in self:
            pass

    def final_message(self) -> Message:
        """Consume the stream and return the completed message.

        Raises:
            LitemsgError: The error that ended the stream, including
                ``Cancelled`` if the stream was cancelled.
        """
        self.until_done()
        return self.aggregator.final_message()

    def result(self) -> StreamResult:
        return self.aggregator.result()

    def cancel(self, reason: str | None = None) -> None:
        """Stop reading and release the connection."""
        self.aggregator.cancel(reason)
        self.response.close()

    def close(self) -> None:
        """Release the connection. An unfinished stream resolves as cancelled."""
        if not self.aggregator.done:
            self.aggregator.cancel("Stream closed before completion")
        self.response.close()

    def __enter__(self) -> MessageStream:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class AsyncMessageStream:
    """A streamed response being read asynchronously.

    Same contract as ``MessageStream``. Cancelling the consuming task marks
    the stream cancelled and closes the connection.
    """

    def __init__(self, response: httpx.Response, aggregator: StreamAggregator) -> None:
        self.response = response
        self.aggregator = aggregator
        self._updates = self._iter_updates()

    def __aiter__(self) -> AsyncIterator[StreamUpdate]:
        return self._updates

    async def __anext__(self) -> StreamUpdate:
        return await self._updates.__anext__()

    async def _iter_updates(self) -> AsyncIterator[StreamUpdate]:
        try:
            async for sse in aiter_sse(self.response.aiter_lines()):
                update = self.aggregator.feed(sse)
                if update is not None:
                    yield update
                if self.aggregator.done:
                    break
        except asyncio.CancelledError:
            self.aggregator.cancel("Task cancelled")
            raise
        except (httpx.HTTPError, httpx.StreamError) as e:
            update = self.aggregator.fail(TransportError(f"Stream read failed: {e}"))
            if update is not None:
                yield update
        finally:
            await self.response.aclose()

        if not self.aggregator.done:
            update = self.aggregator.fail(
                TransportError("Connection closed before message_stop")
            )
            if update is not None:
                yield update

    @property
    async def text_stream(self) -> AsyncIterator[str]:
        async for update in self:
            text = update.text_delta
            if text:
                yield text

    async def until_done(self) -> None:
        async for _ in self:
            pass

    async def final_message(self) -> Message:
        await self.until_done()
        return self.aggregator.final_message()

    def result(self) -> StreamResult:
        return self.aggregator.result()

    async def cancel(self, reason: str | None = None) -> None:
        self.aggregator.cancel(reason)
        await self.response.aclose()

    async def aclose(self) -> None:
        if not self.aggregator.done:
            self.aggregator.cancel("Stream closed before completion")
        await self.response.aclose()

    async def __aenter__(self) -> AsyncMessageStream:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
