import sys
import os
import json
import unittest

# Add the src directory to sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from litemsg import (
    DecodeError,
    TextBlock,
    ToolUseBlock,
    Usage,
    decode_message,
    decode_message_result,
)


def _response(**overrides):
    body = {
        "id": "msg_013Zva2CMHLNnXjNJJKqJ2EF",
        "type": "message",
        "model": "claude-3-5-sonnet-20241022",
        "role": "assistant",
        "content": [
            {"type": "text", "text": "Let me check the weather."},
            {
                "type": "tool_use",
                "id": "toolu_01",
                "name": "get_weather",
                "input": {"location": "San Francisco, CA", "unit": "celsius"},
            },
        ],
        "stop_reason": "tool_use",
        "stop_sequence": None,
        "usage": {"input_tokens": 472, "output_tokens": 91},
    }
    body.update(overrides)
    return body


class TestDecodeMessage(unittest.TestCase):
    """
    Unit tests for decoding non-streaming responses.
    """

    def test_decode_full_response(self):
        message = decode_message(json.dumps(_response()).encode())

        self.assertEqual(message.id, "msg_013Zva2CMHLNnXjNJJKqJ2EF")
        self.assertEqual(message.role, "assistant")
        self.assertEqual(message.stop_reason, "tool_use")
        self.assertIsNone(message.stop_sequence)
        self.assertEqual(len(message.content), 2)
        self.assertIsInstance(message.content[0], TextBlock)
        self.assertIsInstance(message.content[1], ToolUseBlock)
        self.assertEqual(message.text, "Let me check the weather.")
        self.assertEqual(message.tool_uses[0].arguments["unit"], "celsius")
        self.assertTrue(message.is_complete)
        self.assertEqual(message.failed_blocks, [])

    def test_content_order_is_preserved(self):
        content = [{"type": "text", "text": str(i)} for i in range(5)]
        content.append(dict(content[0]))
        message = decode_message(_response(content=content))

        self.assertEqual([b.text for b in message.content], ["0", "1", "2", "3", "4", "0"])

    def test_missing_stop_fields_decode_to_none(self):
        body = _response()
        del body["stop_reason"]
        del body["stop_sequence"]
        message = decode_message(body)

        self.assertIsNone(message.stop_reason)
        self.assertIsNone(message.stop_sequence)
        self.assertFalse(message.is_complete)

    def test_required_fields(self):
        """Each required envelope field is reported by name when missing."""
        for field in ("id", "type", "model", "role", "content", "usage"):
            body = _response()
            del body[field]
            with self.subTest(field=field):
                with self.assertRaises(DecodeError) as ctx:
                    decode_message(body)
                self.assertEqual(ctx.exception.key, field)

    def test_wrong_constant_fields(self):
        with self.assertRaises(DecodeError):
            decode_message(_response(type="completion"))
        with self.assertRaises(DecodeError):
            decode_message(_response(role="user"))
        with self.assertRaises(DecodeError):
            decode_message(_response(content="hello"))

    def test_unknown_content_block_fails_the_message(self):
        body = _response(content=[{"type": "unknown_kind"}])
        with self.assertRaises(DecodeError) as ctx:
            decode_message(body)
        self.assertEqual(ctx.exception.type_, "unknown_kind")

    def test_invalid_json(self):
        with self.assertRaises(DecodeError):
            decode_message(b"{not json")
        with self.assertRaises(DecodeError):
            decode_message(b"[1, 2]")

    def test_decode_result_for_batches(self):
        """A bad record in a batch is skipped without aborting the batch."""
        batch = [json.dumps(_response()), "{", json.dumps(_response(id="msg_2"))]
        results = [decode_message_result(raw) for raw in batch]

        self.assertEqual([r.ok for r in results], [True, False, True])
        self.assertIsInstance(results[1].error, DecodeError)
        self.assertEqual(results[2].message.id, "msg_2")

    def test_deeply_nested_payload_is_a_decode_failure(self):
        result = decode_message_result("[" * 100000 + "]" * 100000)

        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, DecodeError)

    def test_content_is_immutable(self):
        message = decode_message(_response())

        self.assertIsInstance(message.content, tuple)
        with self.assertRaises(AttributeError):
            message.content.append(TextBlock(text="injected"))
        with self.assertRaises(TypeError):
            message.content[0] = TextBlock(text="injected")
        self.assertEqual(len(message.content), 2)

    def test_to_wire(self):
        body = _response()
        self.assertEqual(decode_message(body).to_wire(), body)


class TestUsage(unittest.TestCase):
    """
    Unit tests for token usage accounting.
    """

    def test_absent_cache_counters_are_not_zero(self):
        message = decode_message(_response())
        self.assertIsNone(message.usage.cache_read_input_tokens)
        self.assertIsNone(message.usage.cache_creation_input_tokens)

        usage = {"input_tokens": 10, "output_tokens": 5, "cache_read_input_tokens": 0}
        message = decode_message(_response(usage=usage))
        self.assertEqual(message.usage.cache_read_input_tokens, 0)
        self.assertIsNotNone(message.usage.cache_read_input_tokens)

    def test_output_tokens_is_required(self):
        with self.assertRaises(DecodeError) as ctx:
            decode_message(_response(usage={"input_tokens": 3}))
        self.assertEqual(ctx.exception.key, "usage.output_tokens")

    def test_counters_must_be_integers(self):
        cases = [
            ("output_tokens", {"input_tokens": 3, "output_tokens": "12"}),
            ("input_tokens", {"input_tokens": 3.0, "output_tokens": 1}),
            ("cache_read_input_tokens",
             {"input_tokens": 3, "output_tokens": 1, "cache_read_input_tokens": True}),
        ]
        for field, usage in cases:
            with self.subTest(field=field):
                with self.assertRaises(DecodeError) as ctx:
                    decode_message(_response(usage=usage))
                self.assertEqual(ctx.exception.key, f"usage.{field}")

    def test_cache_hit_rate(self):
        self.assertIsNone(Usage(input_tokens=10, output_tokens=1).cache_hit_rate)
        self.assertEqual(
            Usage(input_tokens=10, output_tokens=1, cache_read_input_tokens=0).cache_hit_rate,
            0.0,
        )
        usage = Usage(
            input_tokens=20,
            output_tokens=1,
            cache_creation_input_tokens=30,
            cache_read_input_tokens=50,
        )
        self.assertAlmostEqual(usage.cache_hit_rate, 0.5)

    def test_merge_keeps_unreported_counters(self):
        usage = Usage(input_tokens=25, output_tokens=1, cache_read_input_tokens=0)
        merged = usage.merge(Usage(output_tokens=15))

        self.assertEqual(merged.input_tokens, 25)
        self.assertEqual(merged.output_tokens, 15)
        self.assertEqual(merged.cache_read_input_tokens, 0)
        self.assertIsNone(merged.cache_creation_input_tokens)
        self.assertIs(usage.merge(None), usage)

    def test_to_wire_omits_absent_counters(self):
        self.assertEqual(
            Usage(input_tokens=3, output_tokens=4).to_wire(),
            {"input_tokens": 3, "output_tokens": 4},
        )


if __name__ == "__main__":
    unittest.main()
