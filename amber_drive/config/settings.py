"""
Configuration settings for the Amber Drive admin back-office.

Uses pydantic-settings for environment variable management with validation.
Supports multi-environment deployments (development, staging, production).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection configuration."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    host: str = "localhost"
    port: int = 5432
    name: str = "amber_drive"
    user: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    pool_size: int = 10
    max_overflow: int = 5

    # Full SQLAlchemy URL, overrides the PostgreSQL parts above when set
    url: str | None = None

    @property
    def async_url(self) -> str:
        """Construct async database URL."""
        if self.url:
            return self.url
        return (
            f"postgresql+asyncpg://{self.user}:"
            f"{self.password.get_secret_value()}@"
            f"{self.host}:{self.port}/{self.name}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.async_url.startswith("sqlite")


class AuthSettings(BaseSettings):
    """Authentication and token configuration."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    secret_key: SecretStr = SecretStr("amber-drive-secret-change-in-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 120


class AISettings(BaseSettings):
    """Language-model provider configuration for AI car search."""

    model_config = SettingsConfigDict(env_prefix="AI_")

    groq_api_key: SecretStr | None = None
    base_url: str = "https://api.groq.com/openai/v1"
    model: str = "llama-3.3-70b-versatile"
    temperature: float = 0.3
    max_tokens: int = 500
    timeout_seconds: float = 30.0


class StorageSettings(BaseSettings):
    """Car image storage configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    local_path: str = "./public/uploads/cars"
    public_url_prefix: str = "/uploads/cars"
    allowed_extensions: list[str] = ["jpg", "jpeg", "png", "gif", "webp"]
    max_file_size_mb: int = 10


class QuoteSettings(BaseSettings):
    """Quote numbering configuration."""

    model_config = SettingsConfigDict(env_prefix="QUOTE_")

    number_prefix: str = "QT"
    number_max_attempts: int = 5


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Amber Drive Admin"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 2

    # CORS (the mobile app calls the API directly)
    cors_origins: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Sub-configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    ai: AISettings = Field(default_factory=AISettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    quote: QuoteSettings = Field(default_factory=QuoteSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()


# Convenience export
settings = get_settings()
