"""Environment-driven settings, one ``BaseSettings`` section per concern.

``APP_ENV`` (development, testing, staging, production) picks an optional
``.env.<APP_ENV>`` file at the project root; real environment variables
still win. Only the app factory reads these values. Components receive
what they need as constructor arguments.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_ENV = os.getenv("APP_ENV", "development")

PROJECT_ROOT = Path(__file__).resolve().parents[2]

KNOWN_ENVIRONMENTS = ("development", "testing", "staging", "production")


def _env_file_for(environment: str) -> Path | None:
    name = environment if environment in KNOWN_ENVIRONMENTS else "development"
    candidate = PROJECT_ROOT / f".env.{name}"
    return candidate if candidate.is_file() else None


# Nested BaseSettings sections don't share an env_file, so the file is
# loaded into os.environ once, before any section is built.
_env_file = _env_file_for(APP_ENV)
if _env_file is not None:
    load_dotenv(_env_file, override=True)


def _build_auth_settings() -> "AuthSettings":
    # jwt_secret is required but comes from the environment, not kwargs
    return AuthSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    allowed_origin: str = Field(
        "*",
        description="Value for Access-Control-Allow-Origin",
    )

    model_config = SettingsConfigDict(env_prefix="APP_", case_sensitive=False)


class AuthSettings(BaseSettings):
    """Anonymous credential signing configuration."""

    jwt_secret: str = Field(
        ...,
        min_length=1,
        description="Server-held HMAC secret used to sign anonymous tokens",
    )
    token_ttl_seconds: int = Field(
        30 * 24 * 60 * 60,
        description="Credential lifetime in seconds (default 30 days)",
        ge=1,
    )

    model_config = SettingsConfigDict(env_prefix="AUTH_", case_sensitive=False)


class RateLimitSettings(BaseSettings):
    """Per-identity sliding window quota."""

    max_requests: int = Field(
        100,
        description="Maximum number of requests allowed per window (per identity)",
        ge=1,
    )
    window_ms: int = Field(
        60 * 60 * 1000,
        description="Sliding window size in milliseconds",
        ge=1000,
    )
    fail_open: bool = Field(
        True,
        description="Admit requests when the quota store is unreachable",
    )

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_", case_sensitive=False)


class UsageSettings(BaseSettings):
    """Per-identity usage statistics."""

    retention_days: int = Field(
        30,
        description="Number of days of daily counters kept on each usage record",
        ge=1,
    )

    model_config = SettingsConfigDict(env_prefix="USAGE_", case_sensitive=False)


class StoreSettings(BaseSettings):
    """Quota store backend selection."""

    backend: Literal["memory", "redis"] = Field(
        "memory",
        description="Quota store backend (memory for single node, redis for shared)",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL (used when backend=redis)",
    )
    timeout_seconds: float = Field(
        2.0,
        description="Connect and socket timeout for store operations",
        gt=0,
    )

    model_config = SettingsConfigDict(env_prefix="STORE_", case_sensitive=False)


class DownstreamSettings(BaseSettings):
    """Third-party endpoint that authenticated requests are forwarded to."""

    url: str | None = Field(
        None,
        description="Downstream endpoint receiving proxied JSON bodies",
    )
    api_key: str | None = Field(
        None,
        description="Bearer key sent to the downstream endpoint",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Request timeout in seconds",
        gt=0,
    )
    user_agent: str = Field(
        "anon-quota-gateway/0.1",
        description="User-Agent header sent downstream",
    )

    model_config = SettingsConfigDict(env_prefix="DOWNSTREAM_", case_sensitive=False)


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(env_prefix="LOG_", case_sensitive=False)


class Settings(BaseSettings):
    """Every settings section, each read from its own env prefix."""

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    auth: AuthSettings = Field(default_factory=_build_auth_settings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    usage: UsageSettings = Field(default_factory=UsageSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    downstream: DownstreamSettings = Field(default_factory=DownstreamSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(case_sensitive=False)


# Process-wide default used by app.main; tests build their own Settings.
settings = Settings()
