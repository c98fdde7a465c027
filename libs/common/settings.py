"""Application settings for the MouseLaw retrieval core."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from ``MOUSELAW_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MOUSELAW_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Core application settings
    app_env: Literal["development", "staging", "production", "test"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = True

    # Mistral (embeddings + chat completion)
    mistral_api_key: str | None = None
    mistral_base_url: str = "https://api.mistral.ai/v1"
    embedding_model: str = "mistral-embed"
    embedding_dimensions: int = Field(default=1024, ge=1)
    chat_model: str = "open-mistral-7b"
    chat_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    chat_max_tokens: int = Field(default=2000, ge=1)

    # Supabase (PostgREST) document store
    supabase_url: str | None = None
    supabase_service_key: str | None = None

    # Timeouts
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    embedding_timeout_seconds: float = Field(default=15.0, gt=0)
    store_timeout_seconds: float = Field(default=10.0, gt=0)

    # Retrieval policy per source: articles favour precision, case law favours recall
    article_limit: int = Field(default=3, ge=1)
    article_threshold: float = 0.75
    article_pool_size: int = Field(default=1000, ge=1)

    case_law_limit: int = Field(default=8, ge=1)
    case_law_threshold: float = 0.40
    case_law_pool_size: int = Field(default=500, ge=1)

    methodology_limit: int = Field(default=3, ge=1)
    methodology_threshold: float = 0.60
    methodology_pool_size: int = Field(default=200, ge=1)

    # Rate limiting (per authenticated identity)
    rate_limit_requests: int = Field(default=30, ge=1)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)

    @field_validator("article_threshold", "case_law_threshold", "methodology_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        """Cosine similarity thresholds must lie in [-1, 1]."""
        if not -1.0 <= v <= 1.0:
            raise ValueError("Similarity threshold must be between -1 and 1")
        return v

    @field_validator("mistral_base_url", "supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        return v.rstrip("/") if v else v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
