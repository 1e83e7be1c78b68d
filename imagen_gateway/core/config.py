"""
Application configuration using Pydantic Settings.

Loads from the process environment and an optional .env file in the
working directory. Values are fixed at startup; there is no hot reload.
"""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path.cwd() / ".env"

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai"

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Gateway settings.

    Every field maps to the upper-cased environment variable of the same
    name (GEMINI_API_KEYS, MAX_RETRIES, ...).
    """

    # Server
    host: str = Field(default="0.0.0.0", description="Listen address")
    port: int = Field(default=8000, description="Listen port")

    # Upstream (Gemini OpenAI-compatible endpoint)
    gemini_api_keys: str = Field(
        default="", description="Comma-separated Gemini API keys for rotation"
    )
    gemini_base_url: str = Field(
        default=DEFAULT_GEMINI_BASE_URL, description="Gemini OpenAI-compatible base URL"
    )
    upstream_timeout_s: float = Field(
        default=120.0, gt=0, description="Per-call upstream timeout in seconds"
    )

    # Retry / concurrency
    max_retries: int = Field(default=3, ge=1, description="Attempts per inbound request")
    retry_delay: int = Field(default=1000, ge=0, description="Base retry delay in milliseconds")
    max_concurrent: int = Field(
        default=10, ge=1, description="Maximum concurrent upstream requests"
    )
    invalid_key_consumes_attempt: bool = Field(
        default=True,
        description="Count the immediate retry after a 400/403 against max_retries",
    )

    # Durable invalid-key record
    invalid_keys_file: str = Field(
        default="invalid_keys.json", description="JSON file of keys rejected by upstream"
    )

    # Security
    auth_tokens: str = Field(
        default="", description="Comma-separated proxy bearer tokens (empty disables auth)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    # Computed Properties
    def _parse_comma_separated(self, value: str) -> list[str]:
        """Helper to parse comma-separated strings."""
        if not value:
            return []
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def gemini_keys_list(self) -> list[str]:
        """Get parsed Gemini API keys as list."""
        return self._parse_comma_separated(self.gemini_api_keys)

    @property
    def auth_tokens_list(self) -> list[str]:
        """Get parsed proxy auth tokens as list."""
        return self._parse_comma_separated(self.auth_tokens)

    @property
    def auth_enabled(self) -> bool:
        return bool(self.auth_tokens_list)

    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay / 1000

    @field_validator("gemini_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.strip().upper()

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        # Case-insensitive environment variables
        case_sensitive=False,
        # Allow extra fields (for forward compatibility)
        extra="ignore",
        # Validate default values
        validate_default=True,
    )


def get_settings() -> Settings:
    """
    Get application settings.

    Use this function to access settings throughout the application.
    """
    return Settings()


# Configuration Validation
def validate_config(settings: Settings) -> None:
    """
    Validate critical configuration on startup.

    Raises:
        ValueError: If configuration is invalid
    """
    if not settings.gemini_keys_list:
        raise ValueError("No Gemini API keys provided in GEMINI_API_KEYS")

    logger.info(
        "configuration_validated",
        extra={
            "event": "configuration_validated",
            "config_path": str(ENV_FILE),
            "num_keys": len(settings.gemini_keys_list),
            "auth_enabled": settings.auth_enabled,
            "max_retries": settings.max_retries,
            "retry_delay_ms": settings.retry_delay,
            "max_concurrent": settings.max_concurrent,
            "port": settings.port,
        },
    )
