"""
Configuration loading from config.yaml plus the process environment.

Uses typed dataclasses throughout so the rest of the app gets IDE
completion and type-checker support without touching raw dicts.

This is the only module that reads environment variables. Providers and
the dispatcher receive their API keys through ProviderConfig.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import yaml

# Provider name → environment variable holding its API key.
API_KEY_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google": "GEMINI_API_KEY",
}
CONFIG_PATH_ENV_VAR = "AIPIM_CONFIG"
PROMPT_PATH_ENV_VAR = "PROMPT_PATH"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ProviderConfig:
    api_key: str = ""
    default_model: str | None = None
    base_url: str | None = None             # OpenAI-compatible gateways only
    system_instruction: str | None = None   # Gemini 1.5+ only


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_file: str | None = "./logs/aipim.log"
    transcripts: bool = True   # write per-exchange transcripts to logs/


@dataclass
class Config:
    default_model: str | None = None
    prompt_dir: str | None = None
    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def prompt_dir_path(self) -> Path | None:
        return Path(self.prompt_dir) if self.prompt_dir else None

    @property
    def log_dir_path(self) -> Path:
        if self.logging.log_file:
            return Path(self.logging.log_file).parent
        return Path("./logs")


def default_config_path(environ: Mapping[str, str] | None = None) -> Path:
    environ = os.environ if environ is None else environ
    return Path(environ.get(CONFIG_PATH_ENV_VAR) or "config.yaml")


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """
    Load config.yaml (if present) and overlay environment variables.

    A missing file is not an error: every setting has a default and API keys
    usually come from the environment. Environment values win over the file.

    Raises:
        ValueError: the file exists but its structure is invalid.
    """
    environ = os.environ if environ is None else environ
    cfg_path = Path(path) if path is not None else default_config_path(environ)

    raw: dict = {}
    if cfg_path.exists():
        with cfg_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid config file {cfg_path}: top level must be a mapping")

    try:
        providers: dict[str, ProviderConfig] = {}
        providers_raw = raw.get("providers") or {}
        if not isinstance(providers_raw, dict):
            raise ValueError("providers must be a mapping of provider name → settings")
        for provider_name in sorted(set(API_KEY_ENV_VARS) | set(providers_raw)):
            prov_raw = providers_raw.get(provider_name) or {}
            providers[provider_name] = ProviderConfig(
                api_key=str(prov_raw.get("api_key") or ""),
                default_model=_opt_str(prov_raw.get("default_model")),
                base_url=_opt_str(prov_raw.get("base_url")),
                system_instruction=_opt_str(prov_raw.get("system_instruction")),
            )

        server_raw = raw.get("server") or {}
        logging_raw = raw.get("logging") or {}
        config = Config(
            default_model=_opt_str(raw.get("default_model")),
            prompt_dir=_opt_str(raw.get("prompt_dir")),
            providers=providers,
            server=ServerConfig(
                host=str(server_raw.get("host", "0.0.0.0")),
                port=int(server_raw.get("port", 3000)),
            ),
            logging=LoggingConfig(
                level=str(logging_raw.get("level", "INFO")).upper(),
                log_file=_opt_str(logging_raw.get("log_file", "./logs/aipim.log")),
                transcripts=bool(logging_raw.get("transcripts", True)),
            ),
        )
    except (AttributeError, TypeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc

    _apply_environment(config, environ)
    _validate(config)
    return config


def _apply_environment(config: Config, environ: Mapping[str, str]) -> None:
    for provider_name, var in API_KEY_ENV_VARS.items():
        value = environ.get(var)
        if value:
            config.providers[provider_name].api_key = value
    prompt_path = environ.get(PROMPT_PATH_ENV_VAR)
    if prompt_path:
        config.prompt_dir = prompt_path


def _validate(config: Config) -> None:
    if config.logging.level not in _LOG_LEVELS:
        raise ValueError(
            f"logging.level must be one of {_LOG_LEVELS}, got '{config.logging.level}'"
        )
    if not 0 < config.server.port < 65536:
        raise ValueError(f"server.port must be between 1 and 65535, got {config.server.port}")


def _opt_str(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def setup_logging(config: LoggingConfig) -> None:
    """Console handler plus, when log_file is set, a rotating file handler."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        log_file = Path(config.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file, maxBytes=2 * 1024 * 1024, backupCount=3,  # 2 MB × 3 files
                encoding="utf-8",
            )
        )
    logging.basicConfig(
        level=getattr(logging, config.level),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        handlers=handlers,
    )
