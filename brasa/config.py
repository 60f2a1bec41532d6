"""
Application configuration management using Pydantic Settings.

This module provides a type-safe, centralized configuration system
that loads from environment variables with sensible defaults.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All settings can be overridden via .env file or environment variables.
    Settings are validated at startup using Pydantic.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===== Queue Store =====
    UPSTASH_REDIS_REST_URL: str | None = Field(
        default=None,
        description="Upstash REST endpoint used for the job queue"
    )

    UPSTASH_REDIS_REST_TOKEN: str | None = Field(
        default=None,
        description="Bearer token for the Upstash REST endpoint"
    )

    REDIS_URL: str | None = Field(
        default=None,
        description="Plain Redis URL (local development alternative to Upstash)"
    )

    QUEUE_KEY_PREFIX: str = Field(
        default="queue",
        description="Namespace for queue keys (<prefix>:pending, <prefix>:job:<id>)"
    )

    QUEUE_MAX_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        description="Default attempts before a job is permanently failed"
    )

    # ===== Worker =====
    WORKER_POLL_INTERVAL: float = Field(
        default=3.0,
        gt=0,
        description="Seconds the worker sleeps when the queue is empty"
    )

    STALE_PROCESSING_MS: int = Field(
        default=300_000,
        description="Processing jobs older than this are handed back to retry"
    )

    PRUNE_INTERVAL_SECONDS: int = Field(
        default=60,
        description="How often the worker sweeps the processing index"
    )

    # ===== Supabase Configuration =====
    SUPABASE_URL: str | None = Field(
        default=None,
        description="Supabase project URL"
    )

    SUPABASE_SERVICE_KEY: str | None = Field(
        default=None,
        description="Supabase service role key (for server-side operations, bypasses RLS)"
    )

    SITE_ASSETS_BUCKET: str = Field(
        default="site-assets",
        description="Storage bucket for generated images"
    )

    # ===== AI Providers =====
    OPENAI_API_KEY: str | None = Field(
        default=None,
        description="OpenAI API key (text and image generation)"
    )

    ANTHROPIC_API_KEY: str | None = Field(
        default=None,
        description="Anthropic API key (text generation only)"
    )

    GOOGLE_API_KEY: str | None = Field(
        default=None,
        description="Google Generative Language API key (Gemini text, Imagen images)"
    )

    PROVIDER_TIMEOUT_SECONDS: float = Field(
        default=120.0,
        description="Timeout applied to provider HTTP calls"
    )

    # ===== Logging =====
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root logging level for worker processes"
    )

    LOG_BUFFER_SIZE: int = Field(
        default=1000,
        description="Entries kept in the in-memory log buffer"
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names (Railway env vars are free text)."""
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    # ===== Computed Properties =====

    @property
    def supabase_configured(self) -> bool:
        """Check if Supabase is properly configured."""
        return (
            self.SUPABASE_URL is not None
            and self.SUPABASE_SERVICE_KEY is not None
        )

    @property
    def upstash_configured(self) -> bool:
        return (
            self.UPSTASH_REDIS_REST_URL is not None
            and self.UPSTASH_REDIS_REST_TOKEN is not None
        )

    @property
    def store_configured(self) -> bool:
        """Check if any queue store backend is configured."""
        return self.upstash_configured or self.REDIS_URL is not None


# Global configuration instance
# Import this in other modules: from brasa.config import config
config = AppConfig()


if __name__ == "__main__":
    print("Configuration loaded successfully!")
    print(f"Queue store: {'✓' if config.store_configured else '✗'}")
    print(f"  Upstash: {'✓' if config.upstash_configured else '✗'}")
    print(f"Supabase: {'✓' if config.supabase_configured else '✗'}")
    print(f"OpenAI: {'✓' if config.OPENAI_API_KEY else '✗'}")
    print(f"Anthropic: {'✓' if config.ANTHROPIC_API_KEY else '✗'}")
    print(f"Google: {'✓' if config.GOOGLE_API_KEY else '✗'}")
