import unittest

from aipim.config import ProviderConfig
from aipim.providers import (
    DEFAULT_MODEL,
    AnthropicProvider,
    ConfigurationError,
    GoogleProvider,
    OpenAIProvider,
    UnsupportedModelError,
    create_default_provider,
    create_provider,
    known_models,
    provider_name_for_model,
)


def _providers(**keys: str) -> dict[str, ProviderConfig]:
    return {name: ProviderConfig(api_key=key) for name, key in keys.items()}


_ALL_KEYS = _providers(openai="sk", anthropic="ak", google="gk")


class ProviderNameForModelTests(unittest.TestCase):
    def test_every_catalogue_model_maps_back_to_its_provider(self) -> None:
        for provider_name, model_id in known_models():
            with self.subTest(model=model_id):
                self.assertEqual(provider_name_for_model(model_id), provider_name)

    def test_prefixes(self) -> None:
        cases = {
            "gpt-4o-mini": "openai",
            "gpt-5": "openai",
            "claude-opus-4-1": "anthropic",
            "gemini-2.0-flash": "google",
        }
        for model, expected in cases.items():
            with self.subTest(model=model):
                self.assertEqual(provider_name_for_model(model), expected)

    def test_unknown_model_carries_identifier(self) -> None:
        for model in ("llama-3-70b", "", "GPT-4o", "o1-preview", " gpt-4o"):
            with self.subTest(model=model):
                with self.assertRaises(UnsupportedModelError) as ctx:
                    provider_name_for_model(model)
                self.assertEqual(ctx.exception.model, model)
                self.assertIn("unsupported model", str(ctx.exception))


class CreateProviderTests(unittest.TestCase):
    def test_returns_matching_variant_with_requested_model(self) -> None:
        cases = {
            "gpt-4-turbo": OpenAIProvider,
            "claude-3-haiku-20240307": AnthropicProvider,
            "gemini-1.5-pro": GoogleProvider,
        }
        for model, cls in cases.items():
            with self.subTest(model=model):
                provider = create_provider(model, _ALL_KEYS)
                self.assertIsInstance(provider, cls)
                self.assertEqual(provider.model, model)

    def test_unsupported_model(self) -> None:
        with self.assertRaises(UnsupportedModelError):
            create_provider("mistral-large", _ALL_KEYS)

    def test_empty_model_is_unsupported(self) -> None:
        with self.assertRaises(UnsupportedModelError) as ctx:
            create_provider("", _ALL_KEYS, default_model="gpt-4o")
        self.assertEqual(ctx.exception.model, "")

    def test_missing_key_names_environment_variable(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            create_provider("gemini-pro", _providers(openai="sk"))
        self.assertEqual(ctx.exception.variable, "GEMINI_API_KEY")

    def test_empty_key_is_missing(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            create_provider("claude-3-opus-20240229", _providers(anthropic=""))
        self.assertEqual(ctx.exception.variable, "ANTHROPIC_API_KEY")

    def test_none_model_uses_default(self) -> None:
        provider = create_provider(None, _ALL_KEYS)
        self.assertEqual(provider.model, DEFAULT_MODEL)

        provider = create_provider(None, _ALL_KEYS, default_model="claude-3-opus-20240229")
        self.assertIsInstance(provider, AnthropicProvider)

    def test_openai_base_url_override(self) -> None:
        cfg = {"openai": ProviderConfig(api_key="sk", base_url="https://gateway.example/v1/")}
        provider = create_provider("gpt-4o", cfg)
        self.assertIsInstance(provider, OpenAIProvider)
        self.assertEqual(provider.url, "https://gateway.example/v1/chat/completions")


class CreateDefaultProviderTests(unittest.TestCase):
    def test_first_catalogue_entry_when_unset(self) -> None:
        provider = create_default_provider("anthropic", _ALL_KEYS)
        self.assertEqual(provider.model, "claude-3-5-sonnet-20240620")

    def test_configured_default_model(self) -> None:
        cfg = {"google": ProviderConfig(api_key="gk", default_model="gemini-1.5-flash")}
        provider = create_default_provider("google", cfg)
        self.assertEqual(provider.model, "gemini-1.5-flash")

    def test_default_model_from_other_family_rejected(self) -> None:
        cfg = {"google": ProviderConfig(api_key="gk", default_model="gpt-4o")}
        with self.assertRaises(ConfigurationError):
            create_default_provider("google", cfg)

    def test_unknown_provider(self) -> None:
        with self.assertRaises(ValueError):
            create_default_provider("mistral", _ALL_KEYS)
