"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

# Score floors written when an audit attempt could not load the page
LEGACY_FAILURE_SCORE = 1
CURRENT_FAILURE_SCORE = 0


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Server
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    public_report_base_url: str = "http://localhost:3000"

    # Database
    database_url: PostgresDsn

    # Redis (RQ queues and the distributed lock backend)
    redis_url: RedisDsn

    # Content capture
    capture_timeout_seconds: float = 20.0
    capture_max_bytes: int = 5_000_000
    capture_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    render_timeout_seconds: float = 25.0
    render_settle_ms: int = 2000

    # Scoring
    min_content_length: int = 200  # Chars of visible text for confidence 4

    # Batch audits
    batch_max_size: int = 10

    # Audit locks
    lock_backend: Literal["memory", "redis"] = "memory"
    lock_ttl_seconds: int | None = None  # Redis only; None keeps the key until released

    # Generative scorer (OpenAI-compatible chat completions)
    openai_api_key: str | None = None
    vision_model: str = "gpt-4o"
    vision_base_url: str = "https://api.openai.com/v1"
    vision_timeout_seconds: float = 60.0
    vision_max_text_chars: int = 8000

    # Sentry
    sentry_dsn: str | None = None

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.env == "test"

    @property
    def vision_enabled(self) -> bool:
        """Check if the generative scorer can be used."""
        return bool(self.openai_api_key)

    def report_url(self, public_id: str) -> str:
        """Public URL for a report snapshot."""
        return f"{self.public_report_base_url.rstrip('/')}/report/{public_id}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    try:
        return Settings()  # type: ignore[call-arg]
    except Exception as e:
        if "validation" in type(e).__name__.lower() or "required" in str(e).lower():
            raise RuntimeError(
                "Missing required environment variables. Set DATABASE_URL and REDIS_URL."
            ) from e
        raise
