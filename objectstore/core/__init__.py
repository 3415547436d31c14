"""Core module - Configuration, logging, and exceptions."""

from objectstore.core.config import Settings, get_settings
from objectstore.core.exceptions import (
    BackendClosedError,
    BackendError,
    ConfigurationError,
    InvalidKeyError,
    NotFoundError,
    ObjectStoreError,
    SigningError,
    StorageError,
    TransferError,
)

__all__ = [
    "Settings",
    "get_settings",
    "ObjectStoreError",
    "StorageError",
    "NotFoundError",
    "TransferError",
    "SigningError",
    "BackendError",
    "InvalidKeyError",
    "BackendClosedError",
    "ConfigurationError",
]
