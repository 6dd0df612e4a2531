"""Configuration management for the MedEasy API console."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from medeasy_console.utils.http import normalize_base_url

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class ApiSettings(BaseModel):
    base_url: str = Field(default="http://localhost:8080")
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Per-request timeout. Unset means requests run until the transport gives up.",
    )

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        return normalize_base_url(value)


class StorageSettings(BaseModel):
    path: str = Field(default="./data/console.sqlite")
    token_key: str = Field(default="medeasy_token")
    user_key: str = Field(default="medeasy_user")


class FormSettings(BaseModel):
    rules_path: str | None = Field(
        default=None,
        description="Optional YAML file adding or overriding form rules",
    )


class ConsoleSettings(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8090, ge=1024, le=65535)
    single_flight: bool = Field(
        default=True,
        description="Reject a submission while the same form is still dispatching.",
    )


class Settings(BaseModel):
    api: ApiSettings = Field(default_factory=ApiSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    forms: FormSettings = Field(default_factory=FormSettings)
    console: ConsoleSettings = Field(default_factory=ConsoleSettings)


ENV_KEYS = {
    "api_url": "MEDEASY_API_URL",
    "api_timeout": "API_TIMEOUT_SECONDS",
    "storage_path": "CONSOLE_STORAGE_PATH",
    "token_key": "CONSOLE_TOKEN_KEY",
    "user_key": "CONSOLE_USER_KEY",
    "rules_path": "FORM_RULES_PATH",
    "host": "CONSOLE_HOST",
    "port": "CONSOLE_PORT",
    "single_flight": "CONSOLE_SINGLE_FLIGHT",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float | None) -> float | None:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])
    rules_path_env = os.getenv(ENV_KEYS["rules_path"], "").strip()

    settings_data: dict[str, object] = {
        "api": {
            "base_url": os.getenv(ENV_KEYS["api_url"], ApiSettings().base_url),
            "timeout_seconds": _env_float(
                ENV_KEYS["api_timeout"], ApiSettings().timeout_seconds
            ),
        },
        "storage": {
            "path": _resolve_path(
                os.getenv(ENV_KEYS["storage_path"], StorageSettings().path)
            ),
            "token_key": os.getenv(ENV_KEYS["token_key"], StorageSettings().token_key),
            "user_key": os.getenv(ENV_KEYS["user_key"], StorageSettings().user_key),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "forms": {
            "rules_path": _resolve_path(rules_path_env) if rules_path_env else None,
        },
        "console": {
            "host": os.getenv(ENV_KEYS["host"], ConsoleSettings().host),
            "port": _env_int(ENV_KEYS["port"], ConsoleSettings().port),
            "single_flight": _env_bool(
                ENV_KEYS["single_flight"], ConsoleSettings().single_flight
            ),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    return settings
