import tempfile
import unittest
from pathlib import Path

from aipim.config import load_config


class LoadConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.dir = Path(self._tmp.name)

    def _write(self, text: str) -> Path:
        path = self.dir / "config.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_missing_file_gives_defaults(self) -> None:
        config = load_config(self.dir / "absent.yaml", environ={})
        self.assertIsNone(config.default_model)
        self.assertEqual(sorted(config.providers), ["anthropic", "google", "openai"])
        self.assertTrue(all(p.api_key == "" for p in config.providers.values()))
        self.assertEqual(config.server.port, 3000)
        self.assertEqual(config.logging.level, "INFO")

    def test_file_values(self) -> None:
        path = self._write(
            "default_model: claude-3-opus-20240229\n"
            "prompt_dir: ./prompts\n"
            "providers:\n"
            "  openai:\n"
            "    api_key: sk-file\n"
            "    base_url: https://gateway.example/v1\n"
            "  google:\n"
            "    api_key: gk-file\n"
            "    system_instruction: Be brief.\n"
            "server:\n"
            "  port: 8080\n"
            "logging:\n"
            "  level: debug\n"
            "  transcripts: false\n"
        )
        config = load_config(path, environ={})
        self.assertEqual(config.default_model, "claude-3-opus-20240229")
        self.assertEqual(config.prompt_dir_path, Path("./prompts"))
        self.assertEqual(config.providers["openai"].api_key, "sk-file")
        self.assertEqual(config.providers["openai"].base_url, "https://gateway.example/v1")
        self.assertEqual(config.providers["google"].system_instruction, "Be brief.")
        self.assertEqual(config.providers["anthropic"].api_key, "")
        self.assertEqual(config.server.port, 8080)
        self.assertEqual(config.logging.level, "DEBUG")
        self.assertFalse(config.logging.transcripts)

    def test_environment_overrides_file(self) -> None:
        path = self._write("providers:\n  openai:\n    api_key: sk-file\n")
        config = load_config(
            path,
            environ={
                "OPENAI_API_KEY": "sk-env",
                "ANTHROPIC_API_KEY": "ak-env",
                "GEMINI_API_KEY": "gk-env",
                "PROMPT_PATH": "/srv/prompts",
            },
        )
        self.assertEqual(config.providers["openai"].api_key, "sk-env")
        self.assertEqual(config.providers["anthropic"].api_key, "ak-env")
        self.assertEqual(config.providers["google"].api_key, "gk-env")
        self.assertEqual(config.prompt_dir, "/srv/prompts")

    def test_config_path_from_environment(self) -> None:
        path = self._write("default_model: gemini-1.5-pro\n")
        config = load_config(environ={"AIPIM_CONFIG": str(path)})
        self.assertEqual(config.default_model, "gemini-1.5-pro")

    def test_invalid_structures(self) -> None:
        for text in ("- a\n- b\n", "providers: [1, 2]\n", "logging:\n  level: LOUD\n", "server:\n  port: 0\n"):
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    load_config(self._write(text), environ={})

    def test_empty_file(self) -> None:
        config = load_config(self._write(""), environ={})
        self.assertEqual(config.server.host, "0.0.0.0")
