"""Configuration settings and loading."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vocabclient.errors import ConfigValidationError, ErrorContext


class ClientSettings(BaseSettings):
    """Configuration for the vocabulary API client."""

    model_config = SettingsConfigDict(
        env_prefix="VOCABCLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = "http://localhost:8000"
    timeout: float = 30.0
    retries: int = 0
    retry_delay: float = 0.3
    document_path: str = "/openapi.json"
    document_retries: int = 1
    cache_ttl: float = 300.0
    cache_file: str | None = None
    session_limit: int = 30

    @field_validator("base_url", mode="before")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("timeout", "cache_ttl")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator("retries", "document_retries", "session_limit")
    @classmethod
    def validate_non_negative_int(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value must be non-negative")
        return v

    @field_validator("retry_delay")
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("retry_delay must be non-negative")
        return v

    @field_validator("document_path")
    @classmethod
    def validate_document_path(cls, v: str) -> str:
        return v if v.startswith("/") else f"/{v}"


def load_settings(config_path: str | Path | None = None, **overrides: Any) -> ClientSettings:
    """Load settings from a YAML file, the environment and explicit overrides.

    Priority: overrides > env vars > config file > defaults. Overrides
    whose value is None are ignored.
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ConfigValidationError(
                    message=f"Config file {config_path} must contain a mapping",
                    value=type(loaded).__name__,
                )
            config_data.update(loaded)

    config_data.update(_get_env_overrides())
    config_data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ClientSettings(**config_data)
    except ValidationError as e:
        raise _config_error(e) from e


def _config_error(error: ValidationError) -> ConfigValidationError:
    """Fold every pydantic error into one ConfigValidationError."""
    problems = [
        (".".join(str(part) for part in err["loc"]), err["msg"], err.get("input"))
        for err in error.errors()
    ]
    first_field, _, first_value = problems[0]
    return ConfigValidationError(
        message="Invalid configuration: " + "; ".join(f"{field}: {msg}" for field, msg, _ in problems),
        field=first_field,
        value=first_value,
        cause=error,
        context=ErrorContext(extra={"fields": [field for field, _, _ in problems]}),
    )


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from VOCABCLIENT_* environment variables."""
    overrides: dict[str, Any] = {}
    prefix = "VOCABCLIENT_"
    for name in ClientSettings.model_fields:
        value = os.environ.get(f"{prefix}{name.upper()}")
        if value is not None:
            overrides[name] = value
    return overrides
