"""Storage service abstraction for local filesystem and cloud object stores."""

from objectstore.services.storage.base import StorageBackend, StorageObject
from objectstore.services.storage.factory import (
    create_storage_backend,
    get_storage_backend,
    reset_storage_backend,
)
from objectstore.services.storage.paths import normalize_key
from objectstore.services.storage.policy import AccessMode, UrlPolicy, resolve_endpoint

__all__ = [
    "StorageBackend",
    "StorageObject",
    "AccessMode",
    "UrlPolicy",
    "normalize_key",
    "resolve_endpoint",
    "create_storage_backend",
    "get_storage_backend",
    "reset_storage_backend",
]
