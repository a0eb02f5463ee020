"""Application settings and configuration."""

import sys
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_JWT_DEFAULTS = {"change-me-in-production", "secret"}


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="REFERHUB_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "referhub"
    env: str = "development"
    allowed_origins: str = "http://localhost:3000"
    public_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL used to build public tracking and referral links",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"

    # Database
    database_url: str = "sqlite:///./referhub.db"
    database_echo: bool = False

    # Tokens issued by the identity provider
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 2

    # Program defaults
    default_conversion_points: int = Field(
        default=50,
        ge=0,
        description="Points awarded per conversion for newly created organizations",
    )

    # Rate limiting (public tracking endpoints)
    rate_limit_enabled: bool = False


# Global settings instance
settings = Settings()

# ── Security validation ──────────────────────────────────────────────
if settings.env == "production":
    if settings.jwt_secret_key in _INSECURE_JWT_DEFAULTS or len(settings.jwt_secret_key) < 32:
        print(
            "\nFATAL: REFERHUB_JWT_SECRET_KEY is insecure or too short (min 32 chars).\n"
            "   Set a strong random value:  openssl rand -hex 32\n",
            file=sys.stderr,
        )
        sys.exit(1)
