"""
Configuration and settings for the LonyiChat backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="")
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Firebase (Firestore + Auth). Without a service account the Admin SDK
    # falls back to application default credentials.
    firebase_service_account: Optional[str] = Field(default=None)
    firebase_project_id: Optional[str] = Field(default=None)

    # Any SQLAlchemy URL; takes precedence over Firestore when set.
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="LONYI_USE_IN_MEMORY_BACKENDS"
    )

    user_search_limit: int = Field(default=10, ge=1, le=100)
    post_feed_limit: int = Field(default=20, ge=1, le=200)
    church_list_limit: int = Field(default=50, ge=1, le=500)
    media_list_limit: int = Field(default=50, ge=1, le=500)

    static_content_path: Optional[str] = Field(default=None)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
