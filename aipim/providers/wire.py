"""
Untagged success/error envelope decoding.

Vendor replies carry no reliable discriminant, so a payload is matched
structurally: the success model first, then the error model. A payload that
fits neither is a TransportError, never a silent default.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from aipim.providers.base import TransportError

S = TypeVar("S", bound=BaseModel)
E = TypeVar("E", bound=BaseModel)


def decode_envelope(
    provider: str,
    payload: Any,
    success_model: type[S],
    error_model: type[E],
) -> S | E:
    try:
        return success_model.model_validate(payload)
    except ValidationError as success_exc:
        try:
            return error_model.model_validate(payload)
        except ValidationError:
            raise TransportError(
                provider,
                f"unrecognized response shape: {_preview(payload)}",
                cause=success_exc,
            ) from success_exc


def _preview(payload: Any, limit: int = 200) -> str:
    text = repr(payload)
    return text if len(text) <= limit else text[:limit] + "…"
