import unittest

from aipim.providers.anthropic import (
    ANTHROPIC_VERSION,
    AnthropicProvider,
    build_request,
    parse_response,
)
from aipim.providers.base import (
    Image,
    Message,
    TransportError,
    UnsupportedResponseContentError,
    VendorError,
)


class _FakeTransport:
    def __init__(self, payload) -> None:
        self._payload = payload
        self.calls: list[dict] = []

    async def post_json(self, url, payload, *, provider, headers=None):
        self.calls.append({"url": url, "payload": payload, "provider": provider, "headers": headers})
        return self._payload


_SUCCESS = {
    "content": [{"text": "Hi! My name is Claude.", "type": "text"}],
    "id": "msg_013Zva2CMHLNnXjNJJKqJ2EF",
    "model": "claude-3-5-sonnet-20240620",
    "role": "assistant",
    "stop_reason": "end_turn",
    "stop_sequence": None,
    "type": "message",
    "usage": {"input_tokens": 10, "output_tokens": 25},
}


class BuildRequestTests(unittest.TestCase):
    def test_text_block_first_then_image_blocks_with_true_mime_type(self) -> None:
        images = (
            Image.from_bytes(b"gif-bytes", "image/gif"),
            Image.from_bytes(b"png-bytes", "image/png"),
        )
        request = build_request(Message(text="what is this?", images=images), "claude-3-opus-20240229")

        self.assertEqual(request["model"], "claude-3-opus-20240229")
        self.assertEqual(request["max_tokens"], 1024)
        self.assertEqual(len(request["messages"]), 1)
        self.assertEqual(request["messages"][0]["role"], "user")

        content = request["messages"][0]["content"]
        self.assertEqual(len(content), 3)
        self.assertEqual(content[0], {"type": "text", "text": "what is this?"})
        self.assertEqual(
            content[1],
            {
                "type": "image",
                "source": {"type": "base64", "media_type": "image/gif", "data": images[0].data},
            },
        )
        self.assertEqual(content[2]["source"]["media_type"], "image/png")


class ParseResponseTests(unittest.TestCase):
    def test_success(self) -> None:
        self.assertEqual(parse_response(_SUCCESS).text, "Hi! My name is Claude.")

    def test_error(self) -> None:
        payload = {
            "type": "error",
            "error": {"type": "invalid_request_error", "message": "max_tokens: field required"},
        }
        with self.assertRaises(VendorError) as ctx:
            parse_response(payload)
        self.assertEqual(ctx.exception.error_type, "invalid_request_error")
        self.assertIn("invalid_request_error", str(ctx.exception))
        self.assertIn("max_tokens: field required", str(ctx.exception))

    def test_first_block_not_text(self) -> None:
        payload = dict(_SUCCESS, content=[
            {"type": "tool_use", "id": "toolu_1", "name": "lookup", "input": {}},
            {"type": "text", "text": "later text"},
        ])
        with self.assertRaises(UnsupportedResponseContentError):
            parse_response(payload)

    def test_type_field_discriminates(self) -> None:
        # A message-shaped body with an unexpected type is neither shape.
        with self.assertRaises(TransportError):
            parse_response(dict(_SUCCESS, type="completion"))

    def test_empty_content_is_unrecognized(self) -> None:
        with self.assertRaises(TransportError):
            parse_response(dict(_SUCCESS, content=[]))


class SendMessageTests(unittest.IsolatedAsyncioTestCase):
    async def test_headers_carry_key_and_version(self) -> None:
        transport = _FakeTransport(_SUCCESS)
        provider = AnthropicProvider(api_key="ak-test", transport=transport)

        response = await provider.send_message(Message(text="hi"))

        self.assertEqual(response.text, "Hi! My name is Claude.")
        call = transport.calls[0]
        self.assertEqual(call["url"], "https://api.anthropic.com/v1/messages")
        self.assertEqual(
            call["headers"],
            {"x-api-key": "ak-test", "anthropic-version": ANTHROPIC_VERSION},
        )
        self.assertEqual(call["payload"]["model"], "claude-3-5-sonnet-20240620")

    async def test_message_override_wins(self) -> None:
        transport = _FakeTransport(_SUCCESS)
        provider = AnthropicProvider(api_key="ak-test", transport=transport)

        await provider.send_message(Message(text="hi", model="claude-3-haiku-20240307"))

        self.assertEqual(transport.calls[0]["payload"]["model"], "claude-3-haiku-20240307")
