"""
Application configuration settings.

Central configuration module using Pydantic BaseSettings with environment variable support.
Loads from .env file and environment variables.

Capacity limits (custom rule ceiling, match values per rule, per-action caps) are
fixed constants in wafkeeper.models.action, not settings.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wafkeeper.models.action import MAX_POLICIES_TO_FETCH as DEFAULT_MAX_POLICIES

# Load .env file if it exists (python-dotenv)
env_path = Path(".env")
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App settings
    APP_NAME: str = "wafkeeper"
    APP_VERSION: str = "0.1.0"
    APP_ENV: str = Field(default="local")
    DEBUG: bool = Field(default=False)

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    LOG_DIR: str = Field(default="logs", description="Directory for the rotating log file")
    LOG_TO_FILE: bool = Field(default=False, description="Also write logs to LOG_DIR/wafkeeper.log")

    # Policy store
    DEFAULT_SUBSCRIPTION_ID: Optional[str] = Field(
        default=None,
        description="Subscription used when an operation does not name one",
    )
    MAX_POLICIES_TO_FETCH: int = Field(
        default=DEFAULT_MAX_POLICIES,
        description="Maximum number of policies to list in a subscription (not an upstream limit)",
    )
    PUSH_POLICY_TIMEOUT: int = Field(
        default=120,
        description="Seconds the policy store may wait for a synchronous push",
    )
    PUSH_POLICY_ASYNC: bool = Field(
        default=False,
        description="Start policy pushes without waiting for completion",
    )

    # Backups
    BACKUP_DIR: str = Field(default="./backups")

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept any casing of the level name."""
        return v.strip().upper()

    @field_validator("MAX_POLICIES_TO_FETCH", "PUSH_POLICY_TIMEOUT")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Limits and timeouts must be positive."""
        if v <= 0:
            raise ValueError("value must be greater than zero")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
