"""
OpenAI provider — Chat Completions over plain HTTP.

Pass base_url to redirect requests to an OpenAI-compatible endpoint.

Wire notes:
- One user message; content is a text part followed by image_url parts.
- Images are sent as data URIs carrying the image's own MIME type.
- A reply whose message content is a list of parts (instead of a plain
  string) is not text and is rejected.
"""

from __future__ import annotations

import logging
from typing import Any

from openai import AsyncOpenAI
from pydantic import BaseModel, Field

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

MAX_TOKENS = 4096
DEFAULT_BASE_URL = "https://api.openai.com/v1"
MODELS = ("gpt-4o", "gpt-4-turbo", "gpt-4", "gpt-3.5-turbo")


class OpenAIProvider(LLMProvider):
    """
    Supports OpenAI chat models and OpenAI-compatible endpoints.

    For a compatible gateway, pass:
        base_url="https://api.groq.com/openai/v1"
        api_key=<gateway key>
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = MODELS[0],
        base_url: str | None = None,
        transport: HttpTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._transport = transport or HttpTransport()

    @property
    def model(self) -> str:
        return self._model

    @property
    def url(self) -> str:
        return f"{self._base_url}/chat/completions"

    async def send_message(self, message: Message) -> Response:
        request = build_request(message, message.model or self._model)
        logger.debug(
            "send_message() [provider=openai model=%s images=%d]",
            request["model"], len(message.images),
        )
        try:
            payload = await self._transport.post_json(
                self.url,
                request,
                provider=self.name,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
            logger.debug("OpenAI response: %s", payload)
            return parse_response(payload)
        except (VendorError, UnsupportedResponseContentError) as exc:
            logger.error("send_message() rejected [provider=openai model=%s]: %s",
                         request["model"], exc)
            raise
        except TransportError as exc:
            logger.error("send_message() failed [provider=openai model=%s]: %s",
                         request["model"], exc, exc_info=True)
            raise

    async def verify(self) -> bool:
        try:
            client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
            await client.models.list()
            return True
        except Exception as exc:
            logger.info("Key verification failed [provider=openai]: %s", exc)
            return False


# --------------------------------------------------------------------------- #
# Request                                                                      #
# --------------------------------------------------------------------------- #

def build_request(message: Message, model: str) -> dict[str, Any]:
    content: list[dict[str, Any]] = [{"type": "text", "text": message.text}]
    for image in message.images:
        content.append({
            "type": "image_url",
            "image_url": {"url": f"data:{image.mime_type};base64,{image.data}"},
        })
    return {
        "model": model,
        "messages": [{"role": "user", "content": content}],
        "max_tokens": MAX_TOKENS,
    }


# --------------------------------------------------------------------------- #
# Response                                                                     #
# --------------------------------------------------------------------------- #

class _ChoiceMessage(BaseModel):
    role: str | None = None
    content: str | list[Any] | None = None


class _Choice(BaseModel):
    index: int = 0
    message: _ChoiceMessage
    finish_reason: str | None = None


class _Completion(BaseModel):
    choices: list[_Choice] = Field(min_length=1)
    id: str | None = None
    model: str | None = None


class _ErrorDetail(BaseModel):
    message: str
    code: str | int | None = None
    param: str | None = None
    type: str | None = None


class _ErrorEnvelope(BaseModel):
    error: _ErrorDetail


def parse_response(payload: Any) -> Response:
    decoded = decode_envelope("openai", payload, _Completion, _ErrorEnvelope)
    if isinstance(decoded, _ErrorEnvelope):
        raise _vendor_error(decoded.error)

    content = decoded.choices[0].message.content
    if not isinstance(content, str):
        raise UnsupportedResponseContentError(
            "openai", f"unsupported response content type: {content!r}"
        )
    return Response(text=content)


def _vendor_error(error: _ErrorDetail) -> VendorError:
    prefix = f"{error.code}: " if error.code is not None else ""
    suffix = f" ({error.param})" if error.param else ""
    if error.type:
        suffix += f" [{error.type}]"
    return VendorError(
        "openai",
        f"{prefix}{error.message}{suffix}",
        code=error.code,
        error_type=error.type,
        param=error.param,
    )
