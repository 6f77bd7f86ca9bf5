"""
Provider factory.

create_provider() is the single entry point for instantiating any LLMProvider.
The provider is chosen from the model identifier alone, by prefix, in a fixed
order; the prefixes never overlap, so at most one family claims a model.

To add a new provider:
  1. Create aipim/providers/<name>.py implementing LLMProvider
  2. Add its prefix to _MODEL_PREFIXES and a case in create_provider()
  3. Add its API-key variable to config.API_KEY_ENV_VARS
"""

from __future__ import annotations

from aipim.config import API_KEY_ENV_VARS, ProviderConfig
from aipim.providers import anthropic as _anthropic
from aipim.providers import google as _google
from aipim.providers import openai as _openai
from aipim.providers.anthropic import AnthropicProvider
from aipim.providers.base import (
    ConfigurationError,
    Image,
    LLMProvider,
    Message,
    ProviderError,
    Response,
    TransportError,
    UnsupportedImageFormatError,
    UnsupportedModelError,
    UnsupportedResponseContentError,
    VendorError,
)
from aipim.providers.google import GoogleProvider
from aipim.providers.openai import OpenAIProvider
from aipim.providers.transport import HttpTransport

__all__ = [
    "LLMProvider",
    "Message",
    "Image",
    "Response",
    "ProviderError",
    "TransportError",
    "VendorError",
    "UnsupportedResponseContentError",
    "UnsupportedModelError",
    "UnsupportedImageFormatError",
    "ConfigurationError",
    "OpenAIProvider",
    "AnthropicProvider",
    "GoogleProvider",
    "HttpTransport",
    "create_provider",
    "create_default_provider",
    "provider_name_for_model",
    "known_models",
    "DEFAULT_MODEL",
]

# Checked in order; first match wins.
_MODEL_PREFIXES: tuple[tuple[str, str], ...] = (
    ("gpt", "openai"),
    ("claude", "anthropic"),
    ("gemini", "google"),
)

_CATALOGUES: dict[str, tuple[str, ...]] = {
    "openai": _openai.MODELS,
    "anthropic": _anthropic.MODELS,
    "google": _google.MODELS,
}

DEFAULT_MODEL = _openai.MODELS[0]


def provider_name_for_model(model: str) -> str:
    """Return the provider family that serves `model`, or raise UnsupportedModelError."""
    for prefix, provider_name in _MODEL_PREFIXES:
        if model.startswith(prefix):
            return provider_name
    raise UnsupportedModelError(model)


def known_models() -> list[tuple[str, str]]:
    """Return a flat list of (provider_name, model_id) across all catalogues."""
    return [
        (provider_name, model_id)
        for provider_name, models in _CATALOGUES.items()
        for model_id in models
    ]


def create_provider(
    model: str | None,
    providers_cfg: dict[str, ProviderConfig],
    *,
    default_model: str | None = None,
    transport: HttpTransport | None = None,
) -> LLMProvider:
    """
    Instantiate the correct LLMProvider for the given model identifier.

    `model=None` selects `default_model`, falling back to DEFAULT_MODEL.

    Raises:
        UnsupportedModelError: no provider prefix matches.
        ConfigurationError: the matching provider has no API key.
    """
    if model is None:
        model = default_model or DEFAULT_MODEL
    provider_name = provider_name_for_model(model)

    prov_cfg = providers_cfg.get(provider_name) or ProviderConfig()
    if not prov_cfg.api_key:
        var = API_KEY_ENV_VARS[provider_name]
        raise ConfigurationError(
            f"Provider '{provider_name}' needs an API key: set {var} "
            f"or providers.{provider_name}.api_key in config.yaml",
            variable=var,
        )

    match provider_name:
        case "openai":
            return OpenAIProvider(
                api_key=prov_cfg.api_key,
                model=model,
                base_url=prov_cfg.base_url,
                transport=transport,
            )
        case "anthropic":
            return AnthropicProvider(
                api_key=prov_cfg.api_key,
                model=model,
                transport=transport,
            )
        case "google":
            return GoogleProvider(
                api_key=prov_cfg.api_key,
                model=model,
                system_instruction=prov_cfg.system_instruction,
                transport=transport,
            )
        case _:
            raise UnsupportedModelError(model)


def create_default_provider(
    provider_name: str,
    providers_cfg: dict[str, ProviderConfig],
    *,
    transport: HttpTransport | None = None,
) -> LLMProvider:
    """Build a provider on its configured default model (first catalogue entry if unset)."""
    if provider_name not in _CATALOGUES:
        raise ValueError(
            f"Unknown provider: '{provider_name}'. Supported: {', '.join(_CATALOGUES)}"
        )
    prov_cfg = providers_cfg.get(provider_name) or ProviderConfig()
    model = prov_cfg.default_model or _CATALOGUES[provider_name][0]
    if provider_name_for_model(model) != provider_name:
        raise ConfigurationError(
            f"providers.{provider_name}.default_model '{model}' belongs to "
            f"{provider_name_for_model(model)}"
        )
    return create_provider(model, providers_cfg, transport=transport)
