"""
Configuration and settings for the bookd backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

IN_MEMORY_DATABASE_URL = "sqlite+pysqlite:///:memory:"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Database (Postgres expected, any SQLAlchemy URL accepted)
    database_url: Optional[str] = Field(default=None)

    # Auth provider (Supabase)
    supabase_url: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)
    auth_timeout_seconds: float = Field(default=10.0)

    # Image host (Cloudinary)
    cloudinary_cloud_name: Optional[str] = Field(default=None)
    cloudinary_upload_preset: str = Field(default="profile_pictures")
    cloudinary_api_key: Optional[str] = Field(default=None)
    cloudinary_api_secret: Optional[str] = Field(default=None)

    # S3-compatible media bucket, used when Cloudinary is not configured
    media_bucket: Optional[str] = Field(default=None)
    media_region: Optional[str] = Field(default=None)
    media_endpoint: Optional[str] = Field(default=None)
    media_public_base_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    profile_image_folder: str = Field(default="bookd/profiles")
    upload_timeout_seconds: float = Field(default=30.0)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
