"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_fallback_model: str | None = None
    openai_base_url: str | None = None
    model_supports_tools: bool = True
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_state_table: str = "agent_state"
    workflow_url: str | None = None
    workflow_token: str | None = None
    rate_limit_window_seconds: int = 600
    rate_limit_max_requests: int = 20
    max_generation_steps: int = 3
    intent_gating: bool = True
    cors_origins: str = "*"
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_cors_origins(raw: str | None) -> list[str]:
    """Parse allowed CORS origins from env."""
    if raw is None:
        return ["*"]
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return ["*"]
    origins: list[str] = []
    for chunk in cleaned.split(","):
        value = chunk.strip().rstrip("/")
        if value:
            origins.append(value)
    return origins or ["*"]
