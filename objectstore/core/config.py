"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables with sensible defaults.
Only the storage factory and logging setup read these settings; backends
themselves are built from their own frozen config models.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    storage_backend: Literal["filesystem", "memory", "s3", "gcs"] = Field(
        default="filesystem", description="Storage backend type"
    )
    storage_endpoint: str | None = Field(
        default=None, description="Externally reachable host override (CDN, mirror)"
    )
    storage_acl: str = Field(
        default="public-read", description="Access control mode for GetURL"
    )
    storage_url_expires: int = Field(
        default=3600, description="Signed URL validity in seconds"
    )
    storage_temp_dir: str | None = Field(
        default=None, description="Directory for temporary copies made by Get"
    )

    # Filesystem settings
    local_storage_path: str = Field(
        default="./data", description="Root directory for filesystem storage"
    )

    # S3/MinIO settings
    s3_endpoint_url: str | None = Field(
        default=None, description="S3 endpoint URL (for MinIO)"
    )
    s3_access_key: str | None = Field(default=None, description="S3 access key")
    s3_secret_key: str | None = Field(default=None, description="S3 secret key")
    s3_session_token: str | None = Field(default=None, description="S3 session token")
    s3_bucket_name: str = Field(default="objectstore", description="S3 bucket name")
    s3_region: str = Field(default="us-east-1", description="S3 region")
    s3_force_path_style: bool = Field(
        default=False, description="Address buckets as the first path segment"
    )
    s3_cache_control: str | None = Field(
        default=None, description="Cache-Control header for uploads"
    )

    # Google Cloud Storage settings
    gcs_bucket_name: str | None = Field(default=None, description="GCS bucket name")
    gcs_project: str | None = Field(default=None, description="GCP project id")
    gcs_service_account_json: str | None = Field(
        default=None, description="Service account key as a JSON document"
    )

    # In-memory settings
    memory_secret: str | None = Field(
        default=None, description="Signing secret for the in-memory backend"
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="json", description="Log format"
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("storage_url_expires")
    @classmethod
    def validate_url_expires(cls, v: int) -> int:
        """Signed URLs need a positive validity window."""
        if v <= 0:
            raise ValueError("storage_url_expires must be positive")
        return v

    @property
    def uses_cloud_backend(self) -> bool:
        """Check if the configured backend talks to a remote service."""
        return self.storage_backend in ("s3", "gcs")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
