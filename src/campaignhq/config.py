"""Settings loaded from the environment (prefix ``CAMPAIGNHQ_``) or a .env file."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed settings for the authoring services."""

    model_config = SettingsConfigDict(
        env_prefix="CAMPAIGNHQ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Message generation (OpenAI-compatible chat completions)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-3.5-turbo"
    generation_max_tokens: int = Field(default=200, gt=0)
    generation_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    generation_timeout: float = Field(default=30.0, gt=0)
    # Minimum spacing between completion requests, in seconds
    generation_min_interval: float = Field(default=2.0, ge=0)
    # Serve a canned message instead of failing when the API answers 429
    generation_fallback_on_rate_limit: bool = True

    # Placeholder audience estimates
    estimate_latency: float = Field(default=0.5, ge=0)
    estimate_min: int = Field(default=100, ge=0)
    estimate_max: int = Field(default=9999, ge=0)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
