"""Configuration management for the Quote Context engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    QUOTE_CONTEXT_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Supabase configuration (only needed by the Supabase-backed store)
    SUPABASE_URL: str | None = Field(default=None, description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str | None = Field(
        default=None, description="Supabase service role key"
    )

    # Context retrieval
    CONTEXT_DEFAULT_LIMIT: int = Field(
        default=10, ge=1, description="Recent messages included in context by default"
    )
    CONTEXT_MAX_TOKENS: int = Field(
        default=8000, ge=1, description="Token budget for assembled conversation context"
    )
    CONTEXT_FETCH_MULTIPLIER: int = Field(
        default=3, ge=1, description="History fetched per request as a multiple of limit"
    )
    CONTEXT_MIN_FETCH: int = Field(
        default=30, ge=1, description="Minimum number of stored messages fetched per request"
    )

    # Summarizer
    SUMMARIZER_RECENT_WINDOW: int = Field(
        default=10, ge=1, description="Most recent messages always kept verbatim"
    )

    # Specification extraction
    ATTACH_ORPHAN_MESSAGES_TO_LAST_GROUP: bool = Field(
        default=True,
        description=(
            "Attach location-less messages that add no information to the most "
            "recently created location group instead of starting a new bucket"
        ),
    )

    # Conversation lifecycle
    CONVERSATION_EXPIRY_DAYS: int = Field(
        default=30, ge=1, description="Days of inactivity before a conversation expires"
    )
    EXPIRY_CHECK_INTERVAL_SECONDS: float = Field(
        default=86_400.0, gt=0, description="Seconds between expired-conversation sweeps"
    )
    DEFAULT_DISPLAY_NAME: str = Field(
        default="there", description="Display name used when the user's name is unknown"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If environment variables fail validation
    """
    return Settings()
