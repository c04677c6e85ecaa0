from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from loguru import logger
from pydantic import field_validator
from pydantic_settings import BaseSettings

from websearch.errors import ConfigError

VERSION = "2.0.0"

DEFAULT_SEARCH_URL = "http://localhost:9999/search"
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_MODEL = "llama3.2:1b"
DEFAULT_MAX_RESULTS = 5
MAX_RESULTS_CEILING = 20
DEFAULT_TIMEOUT_MS = 30000
MIN_TIMEOUT_MS = 1000
DEFAULT_OUTPUT_FORMAT = "console"
OUTPUT_FORMATS = ("console", "json", "markdown", "html", "text")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")
DEFAULT_FALLBACK_MODELS = (
    "llama3.2:1b",
    "llama3.2:3b",
    "llama3.1:8b",
    "mistral:7b",
    "qwen2.5:3b",
)


def _warn_default(field: str, value: Any, default: Any, reason: str) -> Any:
    logger.warning(f"Invalid config value {field}={value!r} ({reason}); using default {default!r}")
    return default


def _int_at_least(field: str, value: Any, minimum: int, default: int, maximum: int | None = None) -> int:
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return _warn_default(field, value, default, "not an integer")
    if number < minimum:
        return _warn_default(field, value, default, f"must be >= {minimum}")
    if maximum is not None and number > maximum:
        return _warn_default(field, value, default, f"must be <= {maximum}")
    return number


def _http_url(field: str, value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    parsed = urlparse(str(value).strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return _warn_default(field, value, default, "not an absolute http(s) URL")
    return str(value).strip()


def _log_level(field: str, value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    level = str(value).upper().strip()
    if level == "WARN":
        level = "WARNING"
    if level not in LOG_LEVELS:
        return _warn_default(field, value, default, f"expected one of {LOG_LEVELS}")
    return level


def _bool_flag(field: str, value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return _warn_default(field, value, default, "expected true or false")


class Settings(BaseSettings):
    # Search backend (SearXNG JSON API)
    search_url: str = DEFAULT_SEARCH_URL
    max_results: int = DEFAULT_MAX_RESULTS
    timeout: int = DEFAULT_TIMEOUT_MS  # milliseconds, applies to every network call

    # Inference backend (Ollama)
    ollama_host: str = DEFAULT_OLLAMA_HOST
    ollama_model: str = DEFAULT_MODEL
    fallback_models: str = ",".join(DEFAULT_FALLBACK_MODELS)  # comma separated

    # Retrieval
    cache_enabled: bool = True
    cache_ttl_minutes: int = 60
    cache_max_entries: int = 100
    fetch_max_parallel: int = 0  # 0 = one task per URL, no extra bound
    max_page_chars: int = 8000

    # Output / logging
    output_format: str = DEFAULT_OUTPUT_FORMAT
    log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = ""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("search_url", mode="before")
    @classmethod
    def _validate_search_url(cls, value: Any) -> str:
        return _http_url("search_url", value, DEFAULT_SEARCH_URL)

    @field_validator("ollama_host", mode="before")
    @classmethod
    def _validate_ollama_host(cls, value: Any) -> str:
        return _http_url("ollama_host", value, DEFAULT_OLLAMA_HOST)

    @field_validator("ollama_model", mode="before")
    @classmethod
    def _validate_model(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            return _warn_default("ollama_model", value, DEFAULT_MODEL, "empty model name")
        return value.strip()

    @field_validator("fallback_models", mode="before")
    @classmethod
    def _validate_fallback_models(cls, value: Any) -> str:
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple)):
            return _warn_default(
                "fallback_models", value, ",".join(DEFAULT_FALLBACK_MODELS), "not a list"
            )
        return ",".join(str(item).strip() for item in value if str(item).strip())

    @field_validator("max_results", mode="before")
    @classmethod
    def _validate_max_results(cls, value: Any) -> int:
        return _int_at_least("max_results", value, 1, DEFAULT_MAX_RESULTS, MAX_RESULTS_CEILING)

    @field_validator("timeout", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> int:
        return _int_at_least("timeout", value, MIN_TIMEOUT_MS, DEFAULT_TIMEOUT_MS)

    @field_validator("cache_ttl_minutes", mode="before")
    @classmethod
    def _validate_cache_ttl(cls, value: Any) -> int:
        return _int_at_least("cache_ttl_minutes", value, 1, 60)

    @field_validator("cache_max_entries", mode="before")
    @classmethod
    def _validate_cache_size(cls, value: Any) -> int:
        return _int_at_least("cache_max_entries", value, 1, 100)

    @field_validator("fetch_max_parallel", mode="before")
    @classmethod
    def _validate_fetch_parallel(cls, value: Any) -> int:
        return _int_at_least("fetch_max_parallel", value, 0, 0)

    @field_validator("max_page_chars", mode="before")
    @classmethod
    def _validate_page_chars(cls, value: Any) -> int:
        return _int_at_least("max_page_chars", value, 500, 8000)

    @field_validator("output_format", mode="before")
    @classmethod
    def _validate_output_format(cls, value: Any) -> str:
        fmt = str(value or "").lower().strip()
        if fmt not in OUTPUT_FORMATS:
            return _warn_default("output_format", value, DEFAULT_OUTPUT_FORMAT, f"expected one of {OUTPUT_FORMATS}")
        return fmt

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        return _log_level("log_level", value, "INFO")

    @field_validator("noisy_log_level", mode="before")
    @classmethod
    def _validate_noisy_log_level(cls, value: Any) -> str:
        return _log_level("noisy_log_level", value, "WARNING")

    @field_validator("cache_enabled", mode="before")
    @classmethod
    def _validate_cache_enabled(cls, value: Any) -> bool:
        return _bool_flag("cache_enabled", value, True)

    @field_validator("log_dir", mode="before")
    @classmethod
    def _validate_log_dir(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            return _warn_default("log_dir", value, "", "not a path string")
        return value.strip()

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000.0

    @property
    def fallback_model_list(self) -> list[str]:
        return [m.strip() for m in self.fallback_models.split(",") if m.strip()]


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON config file, accepting camelCase keys (``maxResults``)."""
    config_path = Path(path)
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")
    return {_snake_case(str(key)): value for key, value in payload.items()}


def load_settings(config_file: str | Path | None = None, **overrides: Any) -> Settings:
    """Build settings. Precedence: overrides > config file > env > .env > defaults."""
    values: dict[str, Any] = {}
    if config_file:
        values.update(read_config_file(config_file))
    values.update({key: value for key, value in overrides.items() if value is not None})
    known = set(Settings.model_fields)
    for key in sorted(set(values) - known):
        logger.warning(f"Ignoring unknown config key: {key}")
    return Settings(**{key: value for key, value in values.items() if key in known})


settings = Settings()
