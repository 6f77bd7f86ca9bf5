"""
Google Gemini provider — generateContent over plain HTTP.

The API key travels as a `key` query parameter rather than a header.
Images go in front of the text part (Gemini's recommended ordering for
single-turn multimodal prompts), in the order the caller attached them.

Newer families (1.5 and later) get a larger output ceiling, ask for a
text/plain reply and, when configured, a system instruction block.
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Annotated, Any, Union

from google import genai
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

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

BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
MAX_TOKENS = 2048
MAX_TOKENS_NEWER = 8192
MODELS = (
    "gemini-1.0-pro",
    "gemini-1.0-pro-latest",
    "gemini-1.0-pro-vision-latest",
    "gemini-1.5-flash",
    "gemini-1.5-flash-latest",
    "gemini-1.5-pro",
    "gemini-1.5-pro-latest",
    "gemini-pro",
    "gemini-pro-vision",
)

_NEWER_FAMILIES = ("gemini-1.5", "gemini-2", "gemini-3")

_GENERATION_DEFAULTS = {
    "temperature": 0.9,
    "topP": 1.0,
    "topK": 1,
}


def is_newer_family(model: str) -> bool:
    return model.startswith(_NEWER_FAMILIES)


class GoogleProvider(LLMProvider):
    name = "google"

    def __init__(
        self,
        api_key: str,
        model: str = MODELS[0],
        system_instruction: str | None = None,
        transport: HttpTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._system_instruction = system_instruction
        self._transport = transport or HttpTransport()

    @property
    def model(self) -> str:
        return self._model

    def url_for(self, model: str) -> str:
        query = urllib.parse.urlencode({"key": self._api_key})
        return f"{BASE_URL}/models/{model}:generateContent?{query}"

    async def send_message(self, message: Message) -> Response:
        model = message.model or self._model
        request = build_request(message, model, system_instruction=self._system_instruction)
        logger.debug(
            "send_message() [provider=google model=%s images=%d]",
            model, len(message.images),
        )
        try:
            payload = await self._transport.post_json(
                self.url_for(model), request, provider=self.name
            )
            logger.debug("Google response: %s", payload)
            return parse_response(payload)
        except (VendorError, UnsupportedResponseContentError) as exc:
            logger.error("send_message() rejected [provider=google model=%s]: %s", model, exc)
            raise
        except TransportError as exc:
            logger.error("send_message() failed [provider=google model=%s]: %s",
                         model, exc, exc_info=True)
            raise

    async def verify(self) -> bool:
        try:
            client = genai.Client(api_key=self._api_key)
            async for _ in await client.aio.models.list():
                break
            return True
        except Exception as exc:
            logger.info("Key verification failed [provider=google]: %s", exc)
            return False


def build_request(
    message: Message,
    model: str,
    *,
    system_instruction: str | None = None,
) -> dict[str, Any]:
    parts: list[dict[str, Any]] = [
        {"inlineData": {"mimeType": image.mime_type, "data": image.data}}
        for image in message.images
    ]
    parts.append({"text": message.text})

    newer = is_newer_family(model)
    generation_config: dict[str, Any] = {
        **_GENERATION_DEFAULTS,
        "maxOutputTokens": MAX_TOKENS_NEWER if newer else MAX_TOKENS,
    }
    request: dict[str, Any] = {
        "contents": [{"parts": parts, "role": "user"}],
        "safetySettings": [],
        "generationConfig": generation_config,
    }
    if newer:
        generation_config["responseMimeType"] = "text/plain"
        if system_instruction:
            request["systemInstruction"] = {"parts": [{"text": system_instruction}]}
    return request


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _Blob(_Wire):
    mime_type: str
    data: str


class _TextPart(_Wire):
    text: str


class _InlineDataPart(_Wire):
    inline_data: _Blob


class _OtherPart(_Wire):
    # functionCall, executableCode, … : anything that is neither of the above.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


_Part = Annotated[
    Union[_TextPart, _InlineDataPart, _OtherPart],
    Field(union_mode="left_to_right"),
]


class _Content(_Wire):
    parts: list[_Part] = Field(min_length=1)
    role: str | None = None


class _Candidate(_Wire):
    content: _Content | None = None
    finish_reason: str | None = None
    index: int | None = None


class _GenerateContentResponse(_Wire):
    candidates: list[_Candidate] = Field(min_length=1)
    usage_metadata: dict[str, Any] | None = None
    prompt_feedback: dict[str, Any] | None = None


class _ErrorDetail(_Wire):
    code: int
    message: str
    status: str


class _ErrorEnvelope(_Wire):
    error: _ErrorDetail


def parse_response(payload: Any) -> Response:
    decoded = decode_envelope("google", payload, _GenerateContentResponse, _ErrorEnvelope)
    if isinstance(decoded, _ErrorEnvelope):
        err = decoded.error
        raise VendorError(
            "google",
            f"{err.status}: {err.message} ({err.code})",
            code=err.code,
            status=err.status,
        )

    candidate = decoded.candidates[0]
    if candidate.content is None:
        raise UnsupportedResponseContentError(
            "google",
            f"candidate has no content (finishReason={candidate.finish_reason})",
        )
    part = candidate.content.parts[0]
    if not isinstance(part, _TextPart):
        raise UnsupportedResponseContentError(
            "google", f"unsupported response content type: {part!r}"
        )
    return Response(text=part.text)
