"""
FastAPI application configuration using Pydantic for environment variable validation.
This module centralizes all configuration settings and provides type safety.
"""

from datetime import timezone, tzinfo
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from zoneinfo import ZoneInfo
import logging

logger = logging.getLogger(__name__)

WEEKDAY_INDEX = {"monday": 0, "sunday": 6}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_env: str = Field(default="development", alias="APP_ENV")
    app_host: str = Field(default="127.0.0.1", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")

    # Document store (optional for testing)
    mongodb_uri: Optional[str] = Field(default="", alias="MONGODB_URI")
    mongodb_db: str = Field(default="feedback_system", alias="MONGODB_DB")
    feedback_collection: str = Field(default="feedbacks", alias="FEEDBACK_COLLECTION")
    mongodb_timeout_ms: int = Field(default=5000, alias="MONGODB_TIMEOUT_MS")

    # LLM Configuration (any OpenAI-compatible chat completions endpoint)
    llm_api_url: str = Field(default="https://api.groq.com/openai/v1", alias="LLM_API_URL")
    llm_api_key: Optional[str] = Field(default="", alias="GROQ_API_KEY")
    llm_model_name: str = Field(default="llama-3.3-70b-versatile", alias="LLM_MODEL_NAME")
    llm_temperature: float = Field(default=0.7, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(default=500, alias="LLM_MAX_TOKENS")
    llm_timeout_seconds: float = Field(default=15.0, alias="LLM_TIMEOUT_SECONDS")

    # Review analysis
    review_max_length: int = Field(default=5000, alias="REVIEW_MAX_LENGTH")
    review_prompt_max_chars: int = Field(default=2000, alias="REVIEW_PROMPT_MAX_CHARS")

    # Analytics
    analytics_timezone: str = Field(default="UTC", alias="ANALYTICS_TIMEZONE")
    week_start_day: str = Field(default="sunday", pattern="^(sunday|monday)$", alias="WEEK_START_DAY")

    # Listing
    default_page_size: int = Field(default=20, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, alias="MAX_PAGE_SIZE")

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_requests: int = Field(default=10, alias="RATE_LIMIT_REQUESTS")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS")

    # Monitoring
    enable_metrics: bool = Field(default=True, alias="ENABLE_METRICS")

    # CORS Configuration (for production security)
    frontend_url: str = Field(default="http://localhost:3000", alias="FRONTEND_URL")
    cors_allowed_origins: Optional[str] = Field(default="", alias="CORS_ALLOWED_ORIGINS")

    @property
    def debug_mode(self) -> bool:
        """Check if application is in debug mode."""
        return self.app_env.lower() == "development"

    @property
    def allowed_origins(self) -> list[str]:
        """Get list of CORS origins."""
        origins = [self.frontend_url]
        if self.cors_allowed_origins:
            origins.extend(o.strip() for o in self.cors_allowed_origins.split(",") if o.strip())
        return origins

    @property
    def reference_timezone(self) -> tzinfo:
        """Time zone that defines calendar days and weeks for analytics."""
        if self.analytics_timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.analytics_timezone)

    @property
    def week_start_weekday(self) -> int:
        """Week start as a `datetime.weekday()` value."""
        return WEEKDAY_INDEX[self.week_start_day]

    def validate_runtime_settings(self):
        """Validate runtime settings and warn about missing collaborators."""
        warnings = []

        if not self.llm_api_key:
            warnings.append("⚠️  WARNING: GROQ_API_KEY not set - every review will use the fallback analysis.")

        if not self.mongodb_uri:
            warnings.append("⚠️  WARNING: MONGODB_URI not set - feedback cannot be persisted.")

        if not self.debug_mode and warnings:
            # In production, these are CRITICAL
            raise ValueError(
                "CRITICAL CONFIGURATION ERROR:\n" + "\n".join(warnings) +
                "\n\nProduction mode requires a model key and a document store. "
                "Set APP_ENV=development to bypass this check."
            )
        elif warnings:
            logger.warning("\n" + "=" * 80 + "\n" + "\n".join(warnings) + "\n" + "=" * 80)


# Global settings instance
settings = Settings()
