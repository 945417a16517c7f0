"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_FAVICON_SERVICES = (
    "https://www.google.com/s2/favicons?domain={hostname}&sz=64",
    "https://icons.duckduckgo.com/ip3/{hostname}.ico",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    environment: str = _ENVIRONMENT
    host: str = "127.0.0.1"
    port: int = 3000
    admin_token: str | None = None
    cors_allow_origins: list[str] = ["*"]

    session_ttl_seconds: int = 600
    sweep_interval_seconds: float = 60
    navigation_timeout_ms: int = 30000
    settle_delay_seconds: float = 2.0

    social_image_timeout_seconds: float = 15
    favicon_timeout_seconds: float = 5
    user_agent: str = "Mozilla/5.0 (compatible; ResourceCardBot/1.0)"
    favicon_services: list[str] = list(DEFAULT_FAVICON_SERVICES)

    cover_viewport_width: int = 1920
    cover_viewport_height: int = 1080
    jpeg_quality: int = 85
    favicon_size: int = 64

    consent_selectors: list[str] = []
    consent_wait_seconds: float = 2.0

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
