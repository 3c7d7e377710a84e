"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    supabase_storage_bucket: str = "ngx-transform"
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "medium"
    openai_store: bool = False
    openai_image_model: str = "gpt-image-1"
    openai_video_model: str = "sora-2"
    max_sessions_per_ip_per_day: int = 3
    max_sessions_per_email_per_day: int = 2
    public_base_url: str = "http://localhost:3000"
    session_webhook_url: str | None = None
    resend_api_key: str | None = None
    email_from: str = "NGX Transform <no-reply@resend.dev>"
    video_poll_interval_seconds: float = 10
    video_poll_max_attempts: int = 36
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_client_ip(forwarded_for: str | None) -> str:
    """Return the first X-Forwarded-For hop, or "unknown"."""
    if not forwarded_for:
        return "unknown"
    first = forwarded_for.split(",")[0].strip()
    return first or "unknown"
