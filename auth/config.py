"""Authentication configuration."""

import os
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    Durations are in their natural units (minutes for short-lived codes,
    hours for session tokens). Built once at startup and injected.
    """

    environment: Literal["production", "staging", "development", "test"] = Field(
        default="production",
        description="Deployment environment",
    )
    expose_dev_otp: bool = Field(
        default=False,
        description=(
            "Return email OTP codes in API responses and log them when delivery "
            "fails. Development only; rejected in production."
        ),
    )

    # Registration session
    registration_session_ttl_minutes: int = Field(
        default=30,
        description="Lifetime of a pending registration, enforced by the store TTL",
        ge=5,
        le=120,
    )
    email_otp_expiry_minutes: int = Field(
        default=10,
        description="How long an email verification code remains valid",
        ge=1,
        le=60,
    )
    otp_max_attempts: int = Field(
        default=5,
        description="Wrong email codes accepted before a resend is required",
        ge=1,
        le=20,
    )

    # Session tokens
    jwt_expiry_hours: int = Field(
        default=168,  # 7 days
        description="Bearer token lifetime in hours",
        ge=1,
        le=2160,
    )
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256",
        description="JWT signing algorithm",
    )

    # Passwords
    bcrypt_rounds: int = Field(
        default=12,
        description="bcrypt cost factor",
        ge=4,
        le=16,
    )
    password_reset_expiry_minutes: int = Field(
        default=60,
        description="How long a password reset link remains valid",
        ge=5,
        le=1440,
    )

    # Rate limiting (sliding window per email or per registration session)
    rate_limit_attempts: int = Field(
        default=5,
        description="Max login / reset / resend requests per key per window",
        ge=1,
        le=50,
    )
    rate_limit_window_minutes: int = Field(
        default=15,
        description="Rate limit window duration",
        ge=1,
        le=60,
    )

    # Application
    app_base_url: str = Field(
        default="http://localhost:8000",
        description="Public base URL of this API",
    )
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Base URL of the web app, used for password reset links",
    )
    app_name: str = Field(
        default="ONE-Go Security",
        description="Application name for emails and token issuer",
    )

    @model_validator(mode="after")
    def _dev_otp_not_in_production(self) -> "AuthConfig":
        if self.expose_dev_otp and self.environment == "production":
            raise ValueError("expose_dev_otp cannot be enabled in production")
        return self


def load_auth_config() -> AuthConfig:
    """Build AuthConfig from environment variables; unset ones keep defaults."""
    overrides = {}
    if os.getenv("ONEGO_ENVIRONMENT"):
        overrides["environment"] = os.environ["ONEGO_ENVIRONMENT"]
    if os.getenv("APP_BASE_URL"):
        overrides["app_base_url"] = os.environ["APP_BASE_URL"]
    if os.getenv("FRONTEND_URL"):
        overrides["frontend_url"] = os.environ["FRONTEND_URL"]
    if os.getenv("EXPOSE_DEV_OTP"):
        overrides["expose_dev_otp"] = os.environ["EXPOSE_DEV_OTP"].lower() in ("1", "true", "yes")
    return AuthConfig(**overrides)
