"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    remote_base_url: str = "http://localhost:8000"
    remote_token: str | None = None
    sync_timeout_seconds: float = 10.0
    sync_cooldown_seconds: float = 5.0
    sync_window_seconds: float = 180.0
    sync_max_attempts: int = 5
    sync_debounce_seconds: float = 2.0
    storage_backend: Literal["file", "supabase"] = "file"
    storage_path: str = ".nutrition-sync/storage.json"
    storage_namespace: str = "default"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    server_storage: Literal["memory", "supabase"] = "memory"
    server_tokens: str | None = None
    fdc_api_key: str = "DEMO_KEY"
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_server_tokens(raw: str | None) -> dict[str, str]:
    """Parse `owner:token` pairs into a token -> owner mapping."""
    if raw is None:
        return {}
    tokens: dict[str, str] = {}
    for chunk in raw.split(","):
        owner, sep, token = chunk.strip().partition(":")
        if not sep:
            continue
        owner, token = owner.strip(), token.strip()
        if owner and token:
            tokens[token] = owner
    return tokens
