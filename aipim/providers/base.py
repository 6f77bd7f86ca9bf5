"""
Abstract LLM provider interface and the normalized message model.

All concrete providers (OpenAI, Anthropic, Google) implement LLMProvider.
A Message is what callers send; a Response is what every provider reduces
its vendor reply to. Images travel base64-encoded from the moment they are
attached, so a Message never holds raw binary.
"""

from __future__ import annotations

import base64
import binascii
from abc import ABC, abstractmethod
from pathlib import Path
from typing import NamedTuple

# Extension → MIME type for every image format the vendors accept inline.
IMAGE_EXTENSIONS: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}
SUPPORTED_MIME_TYPES = frozenset(IMAGE_EXTENSIONS.values())


class Image(NamedTuple):
    data: str        # base64 payload
    mime_type: str   # one of SUPPORTED_MIME_TYPES

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str) -> Image:
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise UnsupportedImageFormatError(mime_type=mime_type)
        return cls(data=base64.b64encode(raw).decode("ascii"), mime_type=mime_type)

    @classmethod
    def from_base64(cls, data: str, mime_type: str) -> Image:
        """Wrap an already-encoded payload, validating both fields."""
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise UnsupportedImageFormatError(mime_type=mime_type)
        try:
            base64.b64decode(data, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"image data is not valid base64: {exc}") from exc
        return cls(data=data, mime_type=mime_type)

    @classmethod
    def from_file(cls, path: str | Path) -> Image:
        """
        Read an image file, inferring its MIME type from the extension.

        Raises:
            UnsupportedImageFormatError: extension is not jpg/jpeg/png/gif/webp.
            OSError: the file cannot be read.
        """
        path = Path(path)
        mime_type = IMAGE_EXTENSIONS.get(path.suffix.lstrip(".").lower())
        if mime_type is None:
            raise UnsupportedImageFormatError(path=path)
        return cls.from_bytes(path.read_bytes(), mime_type)

    def raw(self) -> bytes:
        return base64.b64decode(self.data)


class Message(NamedTuple):
    text: str
    images: tuple[Image, ...] = ()
    model: str | None = None  # overrides the provider's model for this call


class Response(NamedTuple):
    text: str


class LLMProvider(ABC):
    """Abstract base for all LLM API backends."""

    name: str = ""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent when a Message carries no override."""
        ...

    @abstractmethod
    async def send_message(self, message: Message) -> Response:
        """
        Send one message and return the normalized response.

        Exactly one HTTP exchange is made; nothing is retried.

        Raises:
            TransportError: connection failure, timeout or undecodable body.
            VendorError: the vendor API reported a structured error.
            UnsupportedResponseContentError: the first content part is not text.
        """
        ...

    @abstractmethod
    async def verify(self) -> bool:
        """True if the configured API key is accepted by the vendor."""
        ...


# --------------------------------------------------------------------------- #
# Errors                                                                       #
# --------------------------------------------------------------------------- #

class UnsupportedModelError(ValueError):
    """No provider claims the given model identifier."""

    def __init__(self, model: str) -> None:
        self.model = model
        super().__init__(f"unsupported model: {model}")


class ConfigurationError(ValueError):
    """A required setting (usually an API key) is missing."""

    def __init__(self, message: str, variable: str | None = None) -> None:
        self.variable = variable
        super().__init__(message)


class UnsupportedImageFormatError(ValueError):
    def __init__(self, *, path: Path | None = None, mime_type: str | None = None) -> None:
        self.path = path
        self.mime_type = mime_type
        if path is not None:
            detail = f"'{path.suffix or path.name}'"
        else:
            detail = repr(mime_type)
        super().__init__(
            f"unsupported image format: {detail} "
            f"(supported: {', '.join(sorted(IMAGE_EXTENSIONS))})"
        )


class ProviderError(Exception):
    """Raised when a provider API call fails unrecoverably."""

    def __init__(self, provider: str, message: str, cause: Exception | None = None) -> None:
        self.provider = provider
        self.cause = cause
        super().__init__(f"[{provider}] {message}")


class TransportError(ProviderError):
    """The HTTP exchange itself failed or returned something undecodable."""


class VendorError(ProviderError):
    """The vendor API answered with a structured error payload."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        code: str | int | None = None,
        status: str | None = None,
        error_type: str | None = None,
        param: str | None = None,
    ) -> None:
        self.code = code
        self.status = status
        self.error_type = error_type
        self.param = param
        super().__init__(provider, message)


class UnsupportedResponseContentError(ProviderError):
    """A successful reply whose first content part is not text."""
