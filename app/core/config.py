"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Service identity and HTTP surface configuration."""

    service_name: str = Field(
        "user-service",
        description="Service name reported by the health check",
    )
    instance_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Instance identifier; a random UUID is generated when unset or empty",
    )
    host: str = Field("0.0.0.0", description="Bind address for the HTTP server")
    port: int = Field(8080, description="Bind port for the HTTP server")
    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    @field_validator("instance_id")
    @classmethod
    def _default_instance_id(cls, value: str) -> str:
        return value or str(uuid.uuid4())


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to receive and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class DatabaseSettings(BaseSettings):
    """Relational store configuration."""

    url: str = Field(
        "sqlite:///./user_service.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(False, description="Log emitted SQL statements")
    auto_create: bool = Field(
        True,
        description="Create missing tables on application startup",
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Counter store connection configuration."""

    url: str = Field("redis://localhost:6379/0", description="Redis connection URL")
    socket_timeout_seconds: float = Field(
        2.0,
        description="Timeout for a single Redis command round-trip",
    )
    connect_timeout_seconds: float = Field(
        2.0,
        description="Timeout for establishing a Redis connection",
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class JWTSettings(BaseSettings):
    """Access token signing configuration.

    HS* algorithms sign with ``secret_key``. RS*/ES* algorithms read PEM keys
    from ``private_key_path`` (signing) and ``public_key_path`` (verification).
    """

    secret_key: str = Field(
        "change-this-secret-in-prod",
        description="Shared secret for HMAC algorithms",
    )
    algorithm: str = Field("HS256", description="JWT signing algorithm")
    expires_minutes: int = Field(
        24 * 60,
        description="Access token lifetime in minutes",
        ge=1,
    )
    private_key_path: str | None = Field(None, description="PEM private key for asymmetric signing")
    public_key_path: str | None = Field(None, description="PEM public key for asymmetric verification")

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Admission control configuration.

    Two policies run side by side over disjoint key namespaces: one keyed by
    client address for anonymous endpoints, one keyed by the authenticated
    subject for endpoints behind a bearer token.
    """

    enabled: bool = Field(True, description="Enable request throttling")
    backend: str = Field(
        "redis",
        description="Counter store backend: redis or memory (single process only)",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers when throttling",
    )
    fail_open: bool = Field(
        False,
        description="Admit requests when the counter store is unreachable",
    )
    trust_forwarded_for: bool = Field(
        False,
        description="Use the first X-Forwarded-For hop as the client address",
    )

    ip_namespace: str = Field("ip", description="Key namespace for the by-address policy")
    ip_max_requests: int = Field(
        60,
        description="Maximum requests per window per client address",
        ge=1,
    )
    ip_window_seconds: int = Field(
        60,
        description="Window size in seconds for the by-address policy",
        ge=1,
    )

    user_namespace: str = Field("user", description="Key namespace for the by-subject policy")
    user_max_requests: int = Field(
        120,
        description="Maximum requests per window per authenticated user",
        ge=1,
    )
    user_window_seconds: int = Field(
        60,
        description="Window size in seconds for the by-subject policy",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
