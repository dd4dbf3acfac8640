"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

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


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Request-protection and handler configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting on protected handlers",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    rate_limit_window_ms: int = Field(
        60_000,
        description="Fixed window length in milliseconds",
        ge=1,
    )
    rate_limit_ip_max_requests: int = Field(
        100,
        description="Default ceiling per window for the ip namespace",
        ge=1,
    )
    rate_limit_user_max_requests: int = Field(
        50,
        description="Default ceiling per window for the user namespace",
        ge=1,
    )
    rate_limit_retention_ms: int = Field(
        60_000,
        description="Records whose window started longer ago than this are swept",
        ge=1,
    )
    rate_limit_sweep_batch_size: int = Field(
        100,
        description="Maximum number of records examined by one inline sweep",
        ge=1,
    )

    waitlist_ip_max_requests: int = Field(5, ge=1)
    checkout_ip_max_requests: int = Field(100, ge=1)
    checkout_user_max_requests: int = Field(10, ge=1)
    me_user_max_requests: int = Field(100, ge=1)

    reject_unknown_fields: bool = Field(
        True,
        description="Fail validation when the body carries undeclared fields",
    )
    expose_validation_details: bool = Field(
        False,
        description="Return field-level violations in 400 responses",
    )
    max_body_bytes: int = Field(
        1_048_576,
        description="Maximum accepted JSON request body size in bytes",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class UserRecord(BaseModel):
    """A user known to the static identity provider."""

    token: str
    id: str
    email: str
    account_type: str = "student"
    full_name: str | None = None


class AuthSettings(BaseSettings):
    """Identity configuration.

    ``AUTH_USERS`` is a JSON list of user records, each carrying the bearer
    token that identifies it.
    """

    users: list[UserRecord] = Field(
        default_factory=list,
        description="Static token to user mapping (JSON encoded)",
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
    )


class PaymentsSettings(BaseSettings):
    """Payment provider configuration."""

    provider: str = Field("stripe", description="Payment provider name")
    api_key: str | None = Field(None, description="Provider secret key")
    base_url: str = Field(
        "https://api.stripe.com",
        description="Provider API base URL",
    )
    timeout_seconds: float = Field(20.0, description="HTTP timeout in seconds")
    trial_period_days: int = Field(30, ge=0)
    app_id: str | None = Field(
        None,
        description="Application id attached to checkout metadata",
    )

    model_config = SettingsConfigDict(
        env_prefix="PAYMENTS_",
        case_sensitive=False,
    )


def _build_app_settings() -> AppSettings:
    return AppSettings()


def _build_log_settings() -> LogSettings:
    return LogSettings()


def _build_auth_settings() -> AuthSettings:
    return AuthSettings()


def _build_payments_settings() -> PaymentsSettings:
    return PaymentsSettings()


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)
    auth: AuthSettings = Field(default_factory=_build_auth_settings)
    payments: PaymentsSettings = Field(default_factory=_build_payments_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
