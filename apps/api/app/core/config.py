"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    auth_provider: Literal["mock", "supabase"] = "supabase"
    ledger_provider: Literal["memory", "supabase"] = "supabase"
    generation_provider: Literal["mock", "replicate"] = "replicate"

    supabase_url: str | None = None
    supabase_service_key: str | None = None

    replicate_api_token: str | None = None
    replicate_api_base: str = "https://api.replicate.com/v1"
    request_timeout_seconds: float = 60.0
    image_poll_interval_seconds: float = 3.0

    poll_interval_seconds: float = 3.0
    job_timeout_seconds: float = 600.0
    halt_on_insufficient_balance: bool = False

    # Starting balance for profiles created by the in-memory ledger.
    default_credits: int = 50

    model_config = SettingsConfigDict(env_prefix="FRAMECAST_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
