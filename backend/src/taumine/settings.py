"""Application settings and configuration."""

import sys
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_JWT_DEFAULTS = {"change-me-in-production", "secret", "your_jwt_secret_key_here_at_least_32_characters"}


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "taumine"
    env: str = "development"
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    allowed_origins: str = "http://localhost:3000"
    frontend_url: str | None = None

    # JWT
    jwt_secret_key: str = "change-me-in-production"

    # Database
    database_url: str = "sqlite:///./taumine.db"

    # Email (Brevo transactional API)
    brevo_api_key: str | None = None
    email_from_address: str = "no-reply@taumine.app"
    email_from_name: str = "TAU Network"

    # Rewards
    reward_per_step: int = 2000  # 5 steps x 2000 = 10,000 TAU per verified referral
    genesis_pioneer_limit: int = 10000
    leaderboard_metric: Literal["total_referrals", "verified_referrals"] = "total_referrals"
    leaderboard_size: int = 10

    # Auth retries
    auth_max_attempts: int = 3

    # Fraud heuristics
    fraud_max_accounts_per_ip: int = 5
    fraud_min_account_age_seconds: int = 60


# Global settings instance
settings = Settings()

# ── Security validation ──────────────────────────────────────────────
if settings.env == "production":
    if settings.jwt_secret_key in _INSECURE_JWT_DEFAULTS or len(settings.jwt_secret_key) < 32:
        print(
            "\n❌  FATAL: JWT_SECRET_KEY is insecure or too short (min 32 chars).\n"
            "   Set a strong random value:  openssl rand -hex 32\n",
            file=sys.stderr,
        )
        sys.exit(1)
