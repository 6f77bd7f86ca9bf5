"""
Client and MessageBuilder — the caller-facing surface.

    client = Client.from_config(load_config(), "gpt-4o")
    response = await client.message().text("Why is the sky blue?").send()
    print(response.text)

The Client resolves its provider once, at construction. Each call to
client.message() starts a fresh MessageBuilder that accumulates text and
images (in any order) and finally builds an immutable Message.
"""

from __future__ import annotations

import logging
from pathlib import Path

from aipim.config import PROMPT_PATH_ENV_VAR, Config, ProviderConfig
from aipim.conv_logger import ConversationLogger
from aipim.providers import create_provider, provider_name_for_model
from aipim.providers.base import (
    ConfigurationError,
    Image,
    LLMProvider,
    Message,
    Response,
    UnsupportedModelError,
)
from aipim.providers.transport import HttpTransport

logger = logging.getLogger(__name__)


class Client:
    def __init__(
        self,
        model: str | None,
        providers_cfg: dict[str, ProviderConfig],
        *,
        default_model: str | None = None,
        prompt_dir: Path | None = None,
        transport: HttpTransport | None = None,
        conversation_logger: ConversationLogger | None = None,
    ) -> None:
        self._provider = create_provider(
            model, providers_cfg, default_model=default_model, transport=transport
        )
        self._prompt_dir = prompt_dir
        self._conversation_logger = conversation_logger

    @classmethod
    def from_config(
        cls,
        config: Config,
        model: str | None = None,
        *,
        transport: HttpTransport | None = None,
        conversation_logger: ConversationLogger | None = None,
    ) -> Client:
        return cls(
            model,
            config.providers,
            default_model=config.default_model,
            prompt_dir=config.prompt_dir_path,
            transport=transport,
            conversation_logger=conversation_logger,
        )

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    @property
    def model(self) -> str:
        return self._provider.model

    def message(self) -> MessageBuilder:
        return MessageBuilder(self)

    async def send_message(self, message: Message) -> Response:
        """
        Send through the resolved provider.

        A per-message model override must belong to the same provider family;
        the provider (and its API key) was fixed when the Client was built.
        """
        model = message.model or self._provider.model
        if message.model and provider_name_for_model(message.model) != self._provider.name:
            raise UnsupportedModelError(message.model)
        if self._conversation_logger:
            self._conversation_logger.log_request(
                provider=self._provider.name, model=model, message=message
            )
        try:
            response = await self._provider.send_message(message)
        except Exception as exc:
            if self._conversation_logger:
                self._conversation_logger.log_error(error=exc)
            raise
        if self._conversation_logger:
            self._conversation_logger.log_response(text=response.text)
        return response

    def prompt_path(self, name: str) -> Path:
        if self._prompt_dir is None:
            raise ConfigurationError(
                f"No prompt directory configured: set {PROMPT_PATH_ENV_VAR} "
                "or prompt_dir in config.yaml",
                variable=PROMPT_PATH_ENV_VAR,
            )
        return self._prompt_dir / f"{name}.txt"


class MessageBuilder:
    """
    Accumulates one Message. Every setter returns the builder so calls chain.

    Images are base64-encoded as they are added; the builder never keeps
    raw bytes around.
    """

    def __init__(self, client: Client | None = None) -> None:
        self._client = client
        self._text: str | None = None
        self._images: list[Image] = []
        self._model: str | None = None

    def text(self, text: str) -> MessageBuilder:
        self._text = text
        return self

    def prompt(self, name: str) -> MessageBuilder:
        """
        Use the contents of `<prompt_dir>/<name>.txt` as the message text.

        Raises:
            ConfigurationError: no prompt directory is configured.
            FileNotFoundError: the prompt file does not exist.
        """
        if self._client is None:
            raise ConfigurationError("prompt() needs a Client with a prompt directory")
        path = self._client.prompt_path(name)
        self._text = path.read_text(encoding="utf-8")
        logger.debug("Loaded prompt %s (%d chars)", path, len(self._text))
        return self

    def image(self, data: bytes, mime_type: str) -> MessageBuilder:
        self._images.append(Image.from_bytes(data, mime_type))
        return self

    def image_file(self, path: str | Path) -> MessageBuilder:
        """
        Attach an image file; the MIME type comes from its extension.

        Raises:
            UnsupportedImageFormatError: not a jpg/jpeg/png/gif/webp file.
            OSError: the file cannot be read.
        """
        self._images.append(Image.from_file(path))
        return self

    def model(self, model: str) -> MessageBuilder:
        self._model = model
        return self

    def build(self) -> Message:
        if self._text is None:
            raise ValueError("message text is required")
        return Message(text=self._text, images=tuple(self._images), model=self._model)

    async def send(self) -> Response:
        if self._client is None:
            raise RuntimeError("MessageBuilder has no Client to send through")
        return await self._client.send_message(self.build())
