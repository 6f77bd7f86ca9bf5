"""
Anthropic (Claude) provider — Messages API over plain HTTP.

Replies are told apart by their top-level `type`: "message" for success,
"error" for failure. Every request carries the fixed anthropic-version header.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

import anthropic
from pydantic import BaseModel, ConfigDict, Field

from aipim.providers.base import (
    LLMProvider,
    Message,
    Response,
    TransportError,
    UnsupportedResponseContentError,
    VendorError,
)
from aipim.providers.transport import HttpTransport
from aipim.providers.wire import decode_envelope

logger = logging.getLogger(__name__)

MAX_TOKENS = 1024
ANTHROPIC_VERSION = "2023-06-01"
BASE_URL = "https://api.anthropic.com/v1"
MODELS = (
    "claude-3-5-sonnet-20240620",
    "claude-3-opus-20240229",
    "claude-3-sonnet-20240229",
    "claude-3-haiku-20240307",
)


class AnthropicProvider(LLMProvider):
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = MODELS[0],
        transport: HttpTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._transport = transport or HttpTransport()

    @property
    def model(self) -> str:
        return self._model

    async def send_message(self, message: Message) -> Response:
        request = build_request(message, message.model or self._model)
        logger.debug(
            "send_message() [provider=anthropic model=%s images=%d]",
            request["model"], len(message.images),
        )
        try:
            payload = await self._transport.post_json(
                f"{BASE_URL}/messages",
                request,
                provider=self.name,
                headers={
                    "x-api-key": self._api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                },
            )
            logger.debug("Anthropic response: %s", payload)
            return parse_response(payload)
        except (VendorError, UnsupportedResponseContentError) as exc:
            logger.error("send_message() rejected [provider=anthropic model=%s]: %s",
                         request["model"], exc)
            raise
        except TransportError as exc:
            logger.error("send_message() failed [provider=anthropic model=%s]: %s",
                         request["model"], exc, exc_info=True)
            raise

    async def verify(self) -> bool:
        try:
            client = anthropic.AsyncAnthropic(api_key=self._api_key)
            await client.models.list()
            return True
        except Exception as exc:
            logger.info("Key verification failed [provider=anthropic]: %s", exc)
            return False


def build_request(message: Message, model: str) -> dict[str, Any]:
    content: list[dict[str, Any]] = [{"type": "text", "text": message.text}]
    for image in message.images:
        content.append({
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": image.mime_type,
                "data": image.data,
            },
        })
    return {
        "model": model,
        "max_tokens": MAX_TOKENS,
        "messages": [{"role": "user", "content": content}],
    }


class _ContentBlock(BaseModel):
    # Only text blocks are consumed; tool_use, image, thinking, … are kept as-is.
    model_config = ConfigDict(extra="allow")

    type: str
    text: str | None = None


class _Usage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class _Message(BaseModel):
    type: Literal["message"]
    content: list[_ContentBlock] = Field(min_length=1)
    id: str | None = None
    model: str | None = None
    role: str | None = None
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: _Usage | None = None


class _ErrorDetail(BaseModel):
    type: str
    message: str


class _ErrorEnvelope(BaseModel):
    type: Literal["error"]
    error: _ErrorDetail


def parse_response(payload: Any) -> Response:
    decoded = decode_envelope("anthropic", payload, _Message, _ErrorEnvelope)
    if isinstance(decoded, _ErrorEnvelope):
        err = decoded.error
        raise VendorError("anthropic", f"{err.type}: {err.message}", error_type=err.type)

    block = decoded.content[0]
    if block.type != "text" or block.text is None:
        raise UnsupportedResponseContentError(
            "anthropic", f"unsupported response content type: {block.type!r}"
        )
    return Response(text=block.text)
