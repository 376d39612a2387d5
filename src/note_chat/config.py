"""Configuration loading and validation for the note chat panel."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
import tomllib
from typing import Any
from urllib.parse import urlparse

from platformdirs import user_config_path
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .completion import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_TIMEOUT_SECONDS,
)
from .exceptions import ConfigurationError
from .models import SizeTier

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = user_config_path("note-chat")
CONFIG_PATH = CONFIG_DIR / "config.toml"

API_KEY_ENV_VAR = "NOTE_CHAT_API_KEY"
VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class ApiConfig(BaseModel):
    """Completion endpoint credentials and request defaults."""

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0, le=3600)

    @field_validator("api_key", mode="before")
    @classmethod
    def _normalize_api_key(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("api_key must be a string.")
        return value.strip()

    @field_validator("base_url", "model", mode="before")
    @classmethod
    def _validate_required_string(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("String value must not be empty.")
        return normalized

    @field_validator("system_prompt", mode="before")
    @classmethod
    def _normalize_prompt(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        return value.strip()

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme.lower() not in {"http", "https"}:
            raise ValueError("api.base_url must use http or https scheme.")
        if not (parsed.hostname or "").strip():
            raise ValueError("api.base_url must include a hostname.")
        return value.rstrip("/")


class CatalogEntryConfig(BaseModel):
    """One selectable model."""

    id: str
    size_tier: SizeTier | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _validate_id(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Catalog entries need a non-empty id.")
        return value.strip()

    @field_validator("size_tier", mode="before")
    @classmethod
    def _normalize_tier(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            normalized = value.strip().lower()
            return normalized or None
        return value


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/note-chat/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("log_file_path must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("log_file_path must not be empty.")
        return normalized


class Config(BaseModel):
    """Root configuration model for all sections."""

    model_config = ConfigDict(populate_by_name=True)
    api: ApiConfig = ApiConfig()
    catalog: list[CatalogEntryConfig] = Field(default_factory=list)
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="after")
    def _validate_unique_catalog_ids(self) -> Config:
        seen: set[str] = set()
        for entry in self.catalog:
            if entry.id in seen:
                raise ValueError(f"Duplicate catalog id {entry.id!r}.")
            seen.add(entry.id)
        return self


DEFAULT_CONFIG: dict[str, Any] = Config().model_dump(mode="json")


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Create the config directory when missing and return it."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning(
            "config.dir.unavailable",
            extra={"event": "config.dir.unavailable", "path": str(directory), "error": str(exc)},
        )
    return directory


def _overlay(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Overlay user values on defaults, recursing into tables."""
    merged = deepcopy(defaults)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _overlay(current, value)
        else:
            merged[key] = value
    return merged


def _restrict_permissions(path: Path) -> None:
    # The file may hold an API key.
    if os.name != "posix":
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning(
            "config.permissions.failed",
            extra={"event": "config.permissions.failed", "path": str(path), "error": str(exc)},
        )


def _read_user_file(path: Path) -> dict[str, Any]:
    """Parse the user's TOML; a missing or malformed file counts as empty."""
    if not path.exists():
        return {}
    _restrict_permissions(path)
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        LOGGER.warning(
            "config.parse.failed",
            extra={"event": "config.parse.failed", "path": str(path), "error": str(exc)},
        )
        return {}


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """
    Load configuration from TOML, overlay it on the defaults, and validate.

    A file that fails validation is replaced wholesale by the defaults.
    ``NOTE_CHAT_API_KEY`` takes precedence over the file's ``api.api_key``.
    """
    target_path = config_path or CONFIG_PATH
    ensure_config_dir(target_path.parent)
    candidate = _overlay(DEFAULT_CONFIG, _read_user_file(target_path))

    try:
        config = Config.model_validate(candidate).model_dump(mode="json")
    except ValidationError as exc:
        LOGGER.warning(
            "config.invalid",
            extra={"event": "config.invalid", "path": str(target_path), "error": str(exc)},
        )
        config = deepcopy(DEFAULT_CONFIG)
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigurationError(f"Unable to validate configuration: {exc}") from exc

    env_key = os.environ.get(API_KEY_ENV_VAR, "").strip()
    if env_key:
        config["api"]["api_key"] = env_key
    return config
