"""
Storage backend factory.

Creates the appropriate storage backend based on configuration.
"""

from typing import Any

from pydantic import ValidationError

from objectstore.core.config import Settings, get_settings
from objectstore.core.exceptions import ConfigurationError
from objectstore.services.storage.base import StorageBackend

# Singleton instance
_storage_backend: StorageBackend | None = None


def get_storage_backend(settings: Settings | None = None) -> StorageBackend:
    """
    Get the configured storage backend.

    Factory function that creates the appropriate storage backend
    based on application settings. Uses singleton pattern for caching.

    Args:
        settings: Application settings. Uses default if None.

    Returns:
        Configured StorageBackend instance.

    Raises:
        ConfigurationError: If storage backend type is invalid or misconfigured.
    """
    global _storage_backend

    if _storage_backend is not None and not _storage_backend.closed:
        return _storage_backend

    if settings is None:
        settings = get_settings()

    if settings.storage_backend == "filesystem":
        _storage_backend = create_storage_backend(
            "filesystem",
            base_path=settings.local_storage_path,
            endpoint=settings.storage_endpoint,
            temp_dir=settings.storage_temp_dir,
        )

    elif settings.storage_backend == "memory":
        _storage_backend = create_storage_backend(
            "memory",
            endpoint=settings.storage_endpoint,
            acl=settings.storage_acl,
            url_expires=settings.storage_url_expires,
            secret=settings.memory_secret,
            temp_dir=settings.storage_temp_dir,
        )

    elif settings.storage_backend == "s3":
        if bool(settings.s3_access_key) != bool(settings.s3_secret_key):
            raise ConfigurationError(
                message="S3 storage requires both S3_ACCESS_KEY and S3_SECRET_KEY to be set",
            )

        _storage_backend = create_storage_backend(
            "s3",
            bucket=settings.s3_bucket_name,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            session_token=settings.s3_session_token,
            region=settings.s3_region,
            s3_endpoint=settings.s3_endpoint_url,
            endpoint=settings.storage_endpoint,
            force_path_style=settings.s3_force_path_style,
            acl=settings.storage_acl,
            url_expires=settings.storage_url_expires,
            cache_control=settings.s3_cache_control,
            temp_dir=settings.storage_temp_dir,
        )

    elif settings.storage_backend == "gcs":
        if not settings.gcs_bucket_name:
            raise ConfigurationError(
                message="GCS storage requires GCS_BUCKET_NAME to be set",
            )

        _storage_backend = create_storage_backend(
            "gcs",
            bucket=settings.gcs_bucket_name,
            project=settings.gcs_project,
            service_account_json=settings.gcs_service_account_json,
            endpoint=settings.storage_endpoint,
            acl=settings.storage_acl,
            url_expires=settings.storage_url_expires,
            temp_dir=settings.storage_temp_dir,
        )

    else:
        raise ConfigurationError(
            message=f"Unknown storage backend: {settings.storage_backend}",
            details={"storage_backend": settings.storage_backend},
        )

    return _storage_backend


def reset_storage_backend() -> None:
    """Reset the storage backend singleton (for testing)."""
    global _storage_backend
    _storage_backend = None


def create_storage_backend(
    backend_type: str,
    client: Any | None = None,
    **kwargs: Any,
) -> StorageBackend:
    """
    Create a storage backend with custom configuration.

    This function allows creating storage backends with custom settings,
    useful for testing or multi-tenant scenarios.

    Args:
        backend_type: Type of backend ("filesystem", "memory", "s3" or "gcs").
        client: Pre-built vendor client for the s3 and gcs backends.
        **kwargs: Backend-specific configuration fields.

    Returns:
        Configured StorageBackend instance.

    Raises:
        ConfigurationError: If the type is unknown or the fields are invalid.
    """
    try:
        if backend_type in ("filesystem", "local"):
            from objectstore.services.storage.filesystem import (
                FileSystemBackend,
                FileSystemConfig,
            )

            return FileSystemBackend(FileSystemConfig(**kwargs))

        elif backend_type == "memory":
            from objectstore.services.storage.memory import InMemoryBackend, MemoryConfig

            return InMemoryBackend(MemoryConfig(**kwargs))

        elif backend_type == "s3":
            from objectstore.services.storage.s3 import S3Backend, S3Config

            return S3Backend(S3Config(**kwargs), client=client)

        elif backend_type == "gcs":
            from objectstore.services.storage.gcs import GCSBackend, GCSConfig

            return GCSBackend(GCSConfig(**kwargs), client=client)

    except ValidationError as e:
        raise ConfigurationError(
            message=f"Invalid {backend_type} storage configuration",
            details={"errors": e.errors(include_url=False)},
        ) from e

    raise ConfigurationError(
        message=f"Unknown storage backend: {backend_type}",
        details={"storage_backend": backend_type},
    )
