"""Application settings and configuration management."""
from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    PORT: int = 3001
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
        ]
    )

    TAVUS_API_KEY: str = ""
    TAVUS_REPLICA_ID: str = ""
    TAVUS_PERSONA_ID: str = ""
    TAVUS_BASE_URL: str = "https://tavusapi.com"
    CALLBACK_BASE_URL: str = "http://localhost:3001"

    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"

    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    JWT_SECRET: str = "your-secret-key-change-this-to-something-secure"
    HASH_SECRET: str = "hash-secret-key-change-this"
    TOKEN_TTL_DAYS: int = 7

    DB_PATH: str = Field(default="data/users.db")
    LOCAL_STORE_DIR: str = Field(default="data/local_sessions")

    WEBHOOK_CACHE_CAPACITY: int = Field(default=1000, ge=1)
    WEBHOOK_CACHE_TTL_SECONDS: float = Field(default=6 * 3600, gt=0)

    MIN_TRANSCRIPT_CHARS: int = 50

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
