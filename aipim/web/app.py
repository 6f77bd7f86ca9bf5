"""
FastAPI application — the HTTP front end.

Exposes:
  POST /api/messages       Send one message, get the normalized reply
  GET  /api/models         List the known model catalogue
  GET  /api/providers      Which providers have a key, and whether it works

Every failure is returned as {"message": "..."} with a status code chosen
from the error kind (see _STATUS_BY_ERROR).
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from aipim.config import API_KEY_ENV_VARS, load_config, setup_logging
from aipim.providers import (
    ConfigurationError,
    Image,
    Message,
    ProviderError,
    TransportError,
    UnsupportedImageFormatError,
    UnsupportedModelError,
    UnsupportedResponseContentError,
    VendorError,
    create_default_provider,
    create_provider,
    known_models,
)

config = load_config()

# --------------------------------------------------------------------------- #
# Logging                                                                      #
# --------------------------------------------------------------------------- #

setup_logging(config.logging)
logger = logging.getLogger("aipim")


app = FastAPI(title="AIPIM")


class ImagePayload(BaseModel):
    data: str          # base64
    mime_type: str


class MessageRequest(BaseModel):
    text: str
    model: str | None = None
    images: list[ImagePayload] = Field(default_factory=list)


class MessageResponse(BaseModel):
    text: str


# --------------------------------------------------------------------------- #
# Error mapping                                                                #
# --------------------------------------------------------------------------- #

# Most specific first; the first isinstance() match wins.
_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (UnsupportedModelError, 400),
    (UnsupportedImageFormatError, 400),
    (ConfigurationError, 500),
    (VendorError, 502),
    (UnsupportedResponseContentError, 502),
    (TransportError, 502),
    (ProviderError, 502),
    (ValueError, 400),
)


def _status_for(exc: Exception) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


def _error_response(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"message": message})


@app.exception_handler(ProviderError)
async def _provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    return _error_response(_status_for(exc), str(exc))


@app.exception_handler(ValueError)
async def _value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    # Covers UnsupportedModelError, UnsupportedImageFormatError, ConfigurationError
    # and invalid base64 payloads.
    return _error_response(_status_for(exc), str(exc))


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return _error_response(400, f"invalid request body: {details}")


# --------------------------------------------------------------------------- #
# REST                                                                         #
# --------------------------------------------------------------------------- #

@app.post("/api/messages", response_model=MessageResponse)
async def post_message(payload: MessageRequest) -> MessageResponse:
    provider = create_provider(
        payload.model, config.providers, default_model=config.default_model
    )
    message = Message(
        text=payload.text,
        images=tuple(Image.from_base64(i.data, i.mime_type) for i in payload.images),
    )
    logger.info(
        "POST /api/messages [provider=%s model=%s images=%d]",
        provider.name, provider.model, len(message.images),
    )
    response = await provider.send_message(message)
    return MessageResponse(text=response.text)


@app.get("/api/models")
def get_models():
    return [
        {"provider": provider_name, "id": model_id}
        for provider_name, model_id in known_models()
    ]


@app.get("/api/providers")
async def get_providers():
    async def check(name: str) -> dict:
        try:
            provider = create_default_provider(name, config.providers)
        except ValueError as exc:
            return {"provider": name, "configured": False, "connected": False, "error": str(exc)}
        try:
            async with asyncio.timeout(8):
                ok = await provider.verify()
        except TimeoutError:
            ok = False
        return {"provider": name, "configured": True, "connected": ok}

    return await asyncio.gather(*[check(name) for name in sorted(API_KEY_ENV_VARS)])
