"""
Application configuration settings.

Loads configuration from environment variables using pydantic-settings.
GEMINI_API_KEY has no default: constructing Settings without it raises,
so the process stops before the listener is bound.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Loads and stores application configuration from environment variables."""

    # Application
    app_name: str = "Chat Relay API"
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    # Database
    database_url: str = "sqlite+aiosqlite:///./chat_history.db"

    # Gemini
    gemini_api_key: str = Field(min_length=1)
    gemini_model: str = "gemini-pro"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_seconds: float = 30.0
    gemini_temperature: Optional[float] = None
    gemini_max_output_tokens: Optional[int] = None
    system_prompt: Optional[str] = None

    # Conversation context sent to the model; 0 sends the full history
    context_window: int = Field(default=10, ge=0)

    # Redis (optional per-session lock)
    redis_url: Optional[str] = None
    session_lock_ttl_seconds: float = 60.0
    session_lock_wait_seconds: float = 5.0

    # pydantic-settings configuration:
    # - Load variables from a .env file
    # - Ignore extra variables to avoid validation errors
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _lock_outlives_model_call(self) -> "Settings":
        if self.session_lock_ttl_seconds <= self.gemini_timeout_seconds:
            raise ValueError(
                "SESSION_LOCK_TTL_SECONDS must be greater than GEMINI_TIMEOUT_SECONDS"
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
