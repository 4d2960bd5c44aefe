"""
Configuration and settings for the places backend.
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

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Database (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # Authentication
    jwt_secret: str = Field(
        default="supersecret_dont_share", validation_alias="JWT_KEY"
    )
    jwt_expires_minutes: int = Field(default=60, validation_alias="JWT_EXPIRES_MINUTES")

    # Geocoding (Google Maps). Without a key a static geocoder is used.
    google_api_key: Optional[str] = Field(default=None, validation_alias="GOOGLE_API_KEY")

    # Uploaded images
    upload_dir: str = Field(default="uploads/images", validation_alias="UPLOAD_DIR")
    max_image_bytes: int = Field(default=500_000, validation_alias="MAX_IMAGE_BYTES")

    # Optional S3-compatible storage for images
    s3_bucket: Optional[str] = Field(default=None, validation_alias="S3_BUCKET")
    s3_region: Optional[str] = Field(default=None, validation_alias="S3_REGION")
    s3_endpoint: Optional[str] = Field(default=None, validation_alias="S3_ENDPOINT")
    aws_access_key_id: Optional[str] = Field(
        default=None, validation_alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, validation_alias="AWS_SECRET_ACCESS_KEY"
    )

    # HTTP surface
    cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")

    # Listing a user with no places answers 404 unless this is disabled.
    empty_user_places_is_404: bool = Field(
        default=True, validation_alias="EMPTY_USER_PLACES_IS_404"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="PLACESHARE_USE_IN_MEMORY_BACKENDS"
    )

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
