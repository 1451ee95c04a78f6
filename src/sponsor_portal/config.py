"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    session_secret: str
    admin_api_token: str | None = None
    stripe_secret_key: str | None = None
    stripe_api_base: str = "https://api.stripe.com"
    site_url: str = "https://www.beanumber.org"
    sponsor_code_prefix: str = "BAN"
    update_request_cooldown_days: int = 30
    session_max_age_days: int = 30
    cookie_secure: bool = True
    trust_proxy_headers: bool = False
    login_rate_limit: int = 5
    login_rate_window_seconds: int = 900
    checkout_rate_limit: int = 10
    checkout_rate_window_seconds: int = 60
    submission_rate_limit: int = 20
    submission_rate_window_seconds: int = 3600
    update_request_rate_limit: int = 10
    update_request_rate_window_seconds: int = 3600
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_admin_token(raw: str | None) -> str | None:
    """Normalize the configured admin token; blank means not configured."""
    if raw is None:
        return None
    cleaned = raw.strip()
    return cleaned or None
