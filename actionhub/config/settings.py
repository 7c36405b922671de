"""
Settings Management

Provides centralized, type-safe configuration using Pydantic.
Supports environment variables, .env files, and hierarchical config.

Design decisions:
- Using pydantic-settings for validation and type coercion
- Immutable settings after initialization (frozen model)
- Built once at startup and passed to the dispatcher and executors;
  nothing reads the environment inside a request
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Redis connection configuration."""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = Field(default="localhost", description="Redis server hostname")
    port: int = Field(default=6379, ge=1, le=65535)
    db: int = Field(default=0, ge=0, le=15)
    password: SecretStr | None = Field(default=None)
    ssl: bool = Field(default=False)
    key_prefix: str = Field(default="actionhub:")

    @property
    def url(self) -> str:
        """Construct Redis URL for connection."""
        protocol = "rediss" if self.ssl else "redis"
        auth = f":{self.password.get_secret_value()}@" if self.password else ""
        return f"{protocol}://{auth}{self.host}:{self.port}/{self.db}"


class StoreSettings(BaseSettings):
    """Where action definitions and audit logs live."""

    model_config = SettingsConfigDict(env_prefix="ACTIONHUB_STORE_")

    backend: Literal["memory", "redis"] = "memory"

    # YAML file or directory loaded into the in-memory store
    actions_path: str | None = Field(default="config/actions")

    audit_max_entries: int = Field(default=10000, ge=1)


class ExecutionSettings(BaseSettings):
    """Executor limits and behaviour."""

    model_config = SettingsConfigDict(env_prefix="ACTIONHUB_EXEC_")

    default_timeout_ms: int = Field(default=30000, gt=0)
    max_output_bytes: int = Field(default=1024 * 1024, gt=0)
    max_composite_depth: int = Field(default=8, ge=1)

    # When false the HTTP API hands bash/composite plans back to the caller
    # instead of running processes on the service host
    run_bash_on_server: bool = Field(default=False)

    # Outbound HTTP
    verify_ssl: bool = Field(default=True)
    follow_redirects: bool = Field(default=True)
    user_agent: str = Field(default="ActionHub/0.1")


class ApiSettings(BaseSettings):
    """Action service HTTP API."""

    model_config = SettingsConfigDict(env_prefix="ACTIONHUB_API_")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    prefix: str = Field(default="/api/v1")
    cors_origins: list[str] = Field(default=["*"])

    # Bearer token required on every non-health route when set
    token: SecretStr | None = Field(default=None)


class RemoteSettings(BaseSettings):
    """Where the tool front end finds the action service, if remote."""

    model_config = SettingsConfigDict(env_prefix="ACTIONHUB_REMOTE_")

    url: str | None = Field(default=None)
    token: SecretStr | None = Field(default=None)
    timeout: float = Field(default=120.0, gt=0)


class ObservabilitySettings(BaseSettings):
    """Logging and audit configuration."""

    model_config = SettingsConfigDict(env_prefix="ACTIONHUB_OBS_")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: str | None = Field(default=None)

    enable_audit_logging: bool = Field(default=True)


class Settings(BaseSettings):
    """
    Master settings aggregator.

    This is the single source of truth for all configuration.
    Sub-settings are composed here to maintain clear boundaries.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,  # Immutable after creation
    )

    # Application metadata
    app_name: str = Field(default="ActionHub")
    app_version: str = Field(default="0.1.0")
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = Field(default=False)

    # Component settings (composed)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure only one settings instance exists.
    This is safe because settings are frozen/immutable.
    """
    return Settings()
