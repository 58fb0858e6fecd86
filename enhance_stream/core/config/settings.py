"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
enhancement streaming service. All configuration is centralized here to
ensure consistency across modules.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Grouped read-only views (settings.redis, settings.llm, ...)
- Easy testing through reload_settings()
"""

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Redis connection settings for the session store."""

    REDIS_ENABLED: bool = Field(default=True, description="Use Redis as the session store")
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LLMBackendSettings(BaseSettings):
    """
    Generation backend settings.

    A backend is only registered when its API key is present; the mock
    backend is registered when USE_MOCK_LLM_BACKEND is set outside production.
    """

    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
    OPENAI_BASE_URL: str = Field(default="https://api.openai.com/v1", description="OpenAI base URL")
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", description="OpenAI chat model")
    OPENAI_TIMEOUT: int = Field(default=30, description="OpenAI request timeout")

    DEEPSEEK_API_KEY: str | None = Field(default=None, description="DeepSeek API key")
    DEEPSEEK_BASE_URL: str = Field(default="https://api.deepseek.com/v1", description="DeepSeek base URL")
    DEEPSEEK_MODEL: str = Field(default="deepseek-chat", description="DeepSeek chat model")
    DEEPSEEK_TIMEOUT: int = Field(default=30, description="DeepSeek request timeout")

    GOOGLE_API_KEY: str | None = Field(default=None, description="Google Gemini API key")
    GEMINI_MODEL: str = Field(default="gemini-1.5-flash", description="Gemini model")
    GEMINI_TIMEOUT: int = Field(default=30, description="Gemini request timeout")

    DEFAULT_LLM_BACKEND: str = Field(default="gemini", description="Backend tried first in automatic mode")
    LLM_FALLBACK_BACKENDS: str = Field(
        default="openai,deepseek", description="Comma separated fallback order"
    )
    USE_MOCK_LLM_BACKEND: bool = Field(default=False, description="Enable the deterministic mock backend")
    MOCK_CHUNK_DELAY_MS: int = Field(default=200, description="Delay between mock chunks")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)

    @property
    def fallback_backends(self) -> list[str]:
        return [name.strip() for name in self.LLM_FALLBACK_BACKENDS.split(",") if name.strip()]


class SessionSettings(BaseSettings):
    """Session lifetime and generation defaults."""

    SESSION_TTL_SECONDS: int = Field(default=3600, description="Session record time-to-live")
    DEFAULT_TEMPERATURE: float = Field(default=0.7, description="Sampling temperature")
    DEFAULT_MAX_TOKENS: int = Field(default=1000, description="Maximum generated tokens")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """General application settings."""

    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Enhance Stream Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_PREFIX: str = Field(default="/api", description="Prefix for the enhancement routes")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from enhance_stream.core.config import get_settings

        settings = get_settings()
        ttl = settings.session.SESSION_TTL_SECONDS
        fallbacks = settings.llm.fallback_backends
    """

    # Redis
    REDIS_ENABLED: bool = Field(default=True)
    REDIS_HOST: str = Field(default="localhost")
    REDIS_PORT: int = Field(default=6379)
    REDIS_DB: int = Field(default=0)
    REDIS_PASSWORD: str | None = Field(default=None)
    REDIS_MAX_CONNECTIONS: int = Field(default=50)
    REDIS_SOCKET_TIMEOUT: int = Field(default=5)
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5)
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30)

    # Generation backends
    OPENAI_API_KEY: str | None = Field(default=None)
    OPENAI_BASE_URL: str = Field(default="https://api.openai.com/v1")
    OPENAI_MODEL: str = Field(default="gpt-4o-mini")
    OPENAI_TIMEOUT: int = Field(default=30)
    DEEPSEEK_API_KEY: str | None = Field(default=None)
    DEEP_SEEK: str | None = Field(default=None, description="DeepSeek API key (alternative)")
    DEEPSEEK_BASE_URL: str = Field(default="https://api.deepseek.com/v1")
    DEEPSEEK_MODEL: str = Field(default="deepseek-chat")
    DEEPSEEK_TIMEOUT: int = Field(default=30)
    GOOGLE_API_KEY: str | None = Field(default=None)
    GEMINI_MODEL: str = Field(default="gemini-1.5-flash")
    GEMINI_TIMEOUT: int = Field(default=30)
    DEFAULT_LLM_BACKEND: str = Field(default="gemini")
    LLM_FALLBACK_BACKENDS: str = Field(default="openai,deepseek")
    USE_MOCK_LLM_BACKEND: bool = Field(default=False)
    MOCK_CHUNK_DELAY_MS: int = Field(default=200, ge=0)

    # Sessions
    SESSION_TTL_SECONDS: int = Field(default=3600, gt=0)
    DEFAULT_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=2.0)
    DEFAULT_MAX_TOKENS: int = Field(default=1000, ge=1)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json")

    # Application
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development"
    )
    DEBUG: bool = Field(default=False)
    APP_NAME: str = Field(default="Enhance Stream Service")
    APP_VERSION: str = Field(default="1.0.0")
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)
    API_PREFIX: str = Field(default="/api")
    CORS_ORIGINS: list[str] = Field(default=["*"])

    @model_validator(mode="after")
    def merge_deepseek_keys(self):
        """Accept DEEP_SEEK as an alias for DEEPSEEK_API_KEY."""
        if self.DEEPSEEK_API_KEY is None and self.DEEP_SEEK:
            self.DEEPSEEK_API_KEY = self.DEEP_SEEK
        return self

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @property
    def mock_backend_enabled(self) -> bool:
        """The mock backend never serves production or staging traffic."""
        return self.USE_MOCK_LLM_BACKEND and self.ENVIRONMENT in ("development", "test")

    # Grouped views
    @property
    def redis(self) -> RedisSettings:
        """Get Redis settings."""
        return RedisSettings(
            REDIS_ENABLED=self.REDIS_ENABLED,
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
        )

    @property
    def llm(self) -> LLMBackendSettings:
        """Get generation backend settings."""
        return LLMBackendSettings(
            OPENAI_API_KEY=self.OPENAI_API_KEY,
            OPENAI_BASE_URL=self.OPENAI_BASE_URL,
            OPENAI_MODEL=self.OPENAI_MODEL,
            OPENAI_TIMEOUT=self.OPENAI_TIMEOUT,
            DEEPSEEK_API_KEY=self.DEEPSEEK_API_KEY,
            DEEPSEEK_BASE_URL=self.DEEPSEEK_BASE_URL,
            DEEPSEEK_MODEL=self.DEEPSEEK_MODEL,
            DEEPSEEK_TIMEOUT=self.DEEPSEEK_TIMEOUT,
            GOOGLE_API_KEY=self.GOOGLE_API_KEY,
            GEMINI_MODEL=self.GEMINI_MODEL,
            GEMINI_TIMEOUT=self.GEMINI_TIMEOUT,
            DEFAULT_LLM_BACKEND=self.DEFAULT_LLM_BACKEND,
            LLM_FALLBACK_BACKENDS=self.LLM_FALLBACK_BACKENDS,
            USE_MOCK_LLM_BACKEND=self.USE_MOCK_LLM_BACKEND,
            MOCK_CHUNK_DELAY_MS=self.MOCK_CHUNK_DELAY_MS,
        )

    @property
    def session(self) -> SessionSettings:
        """Get session settings."""
        return SessionSettings(
            SESSION_TTL_SECONDS=self.SESSION_TTL_SECONDS,
            DEFAULT_TEMPERATURE=self.DEFAULT_TEMPERATURE,
            DEFAULT_MAX_TOKENS=self.DEFAULT_MAX_TOKENS,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            DEBUG=self.DEBUG,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
            API_PREFIX=self.API_PREFIX,
            CORS_ORIGINS=self.CORS_ORIGINS,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings from the environment (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
