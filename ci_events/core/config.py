"""Configuration management using Pydantic Settings."""

from typing import ClassVar

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ci_events.shared.exceptions import ConfigError

# Singleton instance
_settings: "Settings | None" = None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # GitLab configuration
    gitlab_url: str = "https://gitlab.com"
    gitlab_token: str
    gitlab_timeout_seconds: float = 10.0

    # Webhook receiver
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 8080
    webhook_path: str = "/events"

    # Downstream integration service
    publish_url: str
    publish_token: str = ""

    # Application settings
    log_level: str = "INFO"
    app_version: str = "0.1.0"
    environment: str = "development"

    # Valid log levels
    VALID_LOG_LEVELS: ClassVar[set[str]] = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        v_upper = v.upper()
        if v_upper not in cls.VALID_LOG_LEVELS:
            raise ConfigError(
                f"Invalid log level: {v}. Must be one of {', '.join(cls.VALID_LOG_LEVELS)}"
            )
        return v_upper

    @field_validator("gitlab_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate GitLab request timeout is within (0, 300] seconds."""
        if not 0 < v <= 300:
            raise ConfigError(f"GitLab timeout must be between 0 and 300 seconds, got {v}")
        return v

    @field_validator("webhook_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate webhook port is a usable TCP port."""
        if not 1 <= v <= 65535:
            raise ConfigError(f"Webhook port must be between 1 and 65535, got {v}")
        return v

    @field_validator("webhook_path")
    @classmethod
    def validate_webhook_path(cls, v: str) -> str:
        """Validate webhook path is absolute."""
        if not v.startswith("/"):
            raise ConfigError(f"Webhook path must start with '/', got {v!r}")
        return v

    @field_validator("gitlab_url", "publish_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs so endpoint paths can be appended directly."""
        return v.rstrip("/")

    @property
    def gitlab_api_url(self) -> str:
        """Base URL of the GitLab REST API v4.

        Returns:
            API root (e.g., 'https://gitlab.com/api/v4')
        """
        return f"{self.gitlab_url}/api/v4"


def get_settings() -> Settings:
    """Get or create the global Settings instance (cached singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
