"""Application configuration for the GroupBuy service.

Settings are read from the environment (and an optional ``.env`` file) with
Pydantic Settings. The application factory builds one ``Settings`` object and
passes it down; nothing else reads the environment directly.
"""

from enum import Enum
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class MongoSettings(BaseSettings):
    """Document store connection."""

    model_config = SettingsConfigDict(env_prefix="MONGO_", extra="ignore")

    url: str = Field(default="mongodb://localhost:27017")
    database: str = Field(default="groupbuy")
    server_selection_timeout_ms: int = Field(default=5000, ge=100)


class AuthSettings(BaseSettings):
    """Token signing and password hashing."""

    model_config = SettingsConfigDict(env_prefix="AUTH_", extra="ignore")

    secret_key: str = Field(default="change-me-access-secret")
    refresh_secret_key: str = Field(default="change-me-refresh-secret")
    algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=15, ge=1)
    refresh_token_expire_days: int = Field(default=7, ge=1)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)


class RateLimitSettings(BaseSettings):
    """Fixed-window request limiting per client address."""

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_", extra="ignore")

    enabled: bool = Field(default=True)
    max_requests: int = Field(default=100, ge=1)
    window_seconds: int = Field(default=15 * 60, ge=1)


class LoggingSettings(BaseSettings):
    """Logging output."""

    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    level: str = Field(default="INFO")
    format: str = Field(default="json", pattern="^(json|text)$")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(default=Environment.DEVELOPMENT)
    app_name: str = Field(default="GroupBuy API")
    version: str = Field(default="0.1.0")
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    mongo: MongoSettings = Field(default_factory=MongoSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings built from the environment."""
    return Settings()
