import sys
import os
import asyncio
import unittest

# Add the src directory to sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from litemsg import DecodeError, TextBlock, ToolUseBlock, decode_stream_event
from litemsg.events import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ErrorEvent,
    InputJsonDelta,
    MessageDeltaEvent,
    MessageStartEvent,
    PingEvent,
    TextDelta,
)
from litemsg.sse import ServerSentEvent, SSEDecoder, aiter_sse, iter_sse


class TestDecodeStreamEvent(unittest.TestCase):
    """
    Unit tests for decoding server-sent event payloads.
    """

    def test_message_start(self):
        event = decode_stream_event(
            b'{"type":"message_start","message":{"id":"msg_1","type":"message",'
            b'"role":"assistant","content":[],"model":"x","stop_reason":null,'
            b'"stop_sequence":null,"usage":{"input_tokens":25,"output_tokens":1}}}'
        )

        self.assertIsInstance(event, MessageStartEvent)
        self.assertEqual(event.message.id, "msg_1")
        self.assertEqual(event.message.content, ())
        self.assertIsNone(event.message.stop_reason)

    def test_content_block_start_seeds(self):
        text = decode_stream_event(
            {"type": "content_block_start", "index": 0,
             "content_block": {"type": "text", "text": ""}}
        )
        tool = decode_stream_event(
            {"type": "content_block_start", "index": 1,
             "content_block": {"type": "tool_use", "id": "toolu_1",
                               "name": "get_weather", "input": {}}}
        )

        self.assertIsInstance(text, ContentBlockStartEvent)
        self.assertIsInstance(text.content_block, TextBlock)
        self.assertIsInstance(tool.content_block, ToolUseBlock)
        self.assertEqual(tool.content_block.name, "get_weather")

    def test_deltas(self):
        text = decode_stream_event(
            '{"type":"content_block_delta","index":0,'
            '"delta":{"type":"text_delta","text":"Hel"}}'
        )
        json_delta = decode_stream_event(
            '{"type":"content_block_delta","index":1,'
            '"delta":{"type":"input_json_delta","partial_json":"{\\"loc"}}'
        )

        self.assertIsInstance(text, ContentBlockDeltaEvent)
        self.assertIsInstance(text.delta, TextDelta)
        self.assertEqual(text.delta.text, "Hel")
        self.assertIsInstance(json_delta.delta, InputJsonDelta)
        self.assertEqual(json_delta.delta.partial_json, '{"loc')

    def test_unknown_delta_type(self):
        with self.assertRaises(DecodeError) as ctx:
            decode_stream_event(
                {"type": "content_block_delta", "index": 0,
                 "delta": {"type": "sparkle_delta"}}
            )
        self.assertEqual(ctx.exception.type_, "sparkle_delta")

    def test_message_delta_usage_is_partial(self):
        event = decode_stream_event(
            {"type": "message_delta",
             "delta": {"stop_reason": "end_turn", "stop_sequence": None},
             "usage": {"output_tokens": 15}}
        )

        self.assertIsInstance(event, MessageDeltaEvent)
        self.assertEqual(event.delta.stop_reason, "end_turn")
        self.assertIsNone(event.usage.input_tokens)
        self.assertEqual(event.usage.output_tokens, 15)

    def test_ping_and_error(self):
        self.assertIsInstance(decode_stream_event({"type": "ping"}), PingEvent)
        error = decode_stream_event(
            {"type": "error",
             "error": {"type": "overloaded_error", "message": "Overloaded"}}
        )
        self.assertIsInstance(error, ErrorEvent)
        self.assertEqual(error.error.type, "overloaded_error")

    def test_unknown_event_type(self):
        with self.assertRaises(DecodeError) as ctx:
            decode_stream_event({"type": "message_sparkle"})
        self.assertEqual(ctx.exception.key, "type")

    def test_event_name_must_match_payload(self):
        with self.assertRaises(DecodeError):
            decode_stream_event({"type": "ping"}, event="message_stop")
        self.assertIsInstance(decode_stream_event({"type": "ping"}, event="ping"), PingEvent)

    def test_missing_field(self):
        with self.assertRaises(DecodeError) as ctx:
            decode_stream_event({"type": "content_block_stop"})
        self.assertEqual(ctx.exception.key, "index")

    def test_index_must_be_an_integer(self):
        for index in ("0", 0.0, True):
            with self.subTest(index=index):
                with self.assertRaises(DecodeError) as ctx:
                    decode_stream_event({"type": "content_block_stop", "index": index})
                self.assertEqual(ctx.exception.key, "index")

    def test_usage_counters_must_be_integers(self):
        with self.assertRaises(DecodeError) as ctx:
            decode_stream_event(
                {"type": "message_delta", "delta": {},
                 "usage": {"output_tokens": "12"}}
            )
        self.assertEqual(ctx.exception.key, "usage.output_tokens")


class TestServerSentEvents(unittest.TestCase):
    """
    Unit tests for SSE framing.
    """

    def test_iter_sse(self):
        lines = [
            "event: message_start",
            'data: {"a": 1}',
            "",
            ": keepalive comment",
            "event: ping",
            "data: {}",
            "",
        ]
        events = list(iter_sse(lines))

        self.assertEqual(
            events,
            [
                ServerSentEvent(event="message_start", data='{"a": 1}'),
                ServerSentEvent(event="ping", data="{}"),
            ],
        )

    def test_multiline_data(self):
        events = list(iter_sse(["data: first", "data:second", "id: 7", ""]))

        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].data, "first\nsecond")
        self.assertEqual(events[0].id, "7")

    def test_unterminated_tail_is_dropped(self):
        events = list(iter_sse(["event: ping", "data: {}", "", "event: ping", "data: {}"]))
        self.assertEqual(events, [ServerSentEvent(event="ping", data="{}")])

    def test_frames_without_data_are_discarded(self):
        lines = [
            "retry: 3000",
            "",
            "event: ping",
            "",
            "id: 9",
            "",
            "event: message_stop",
            'data: {"type": "message_stop"}',
            "",
        ]
        events = list(iter_sse(lines))

        self.assertEqual(
            events,
            [ServerSentEvent(event="message_stop", data='{"type": "message_stop"}', id="9")],
        )

    def test_decoder_ignores_blank_runs(self):
        decoder = SSEDecoder()
        self.assertIsNone(decoder.decode(""))
        self.assertIsNone(decoder.decode("retry: soon"))
        self.assertIsNone(decoder.decode(""))

    def test_aiter_sse(self):
        async def lines():
            for line in ["event: ping", "data: {}", ""]:
                yield line

        async def collect():
            return [sse async for sse in aiter_sse(lines())]

        events = asyncio.run(collect())
        self.assertEqual(events, [ServerSentEvent(event="ping", data="{}")])


if __name__ == "__main__":
    unittest.main()
