"""
Custom exceptions for objectstore.

All exceptions inherit from ObjectStoreError and carry a stable error code
and structured details so callers can report failures consistently.
"""

from typing import Any


class ObjectStoreError(Exception):
    """Base exception for all objectstore errors."""

    error_code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        error_code: str | None = None,
    ) -> None:
        self.message = message or self.message
        self.details = details or {}
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for reporting."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ObjectStoreError):
    """Raised when a backend cannot be built from the given configuration."""

    error_code = "CONFIGURATION_ERROR"
    message = "Invalid storage configuration"


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(ObjectStoreError):
    """Raised when a storage operation fails."""

    error_code = "STORAGE_ERROR"
    message = "Storage operation failed"


class NotFoundError(StorageError):
    """Raised when an object does not exist in storage."""

    error_code = "OBJECT_NOT_FOUND"
    message = "Object not found in storage"

    def __init__(self, key: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=f"Object not found: {key}",
            details={"key": key, **(details or {})},
        )
        self.key = key


class TransferError(StorageError):
    """Raised when copying or streaming an object is interrupted."""

    error_code = "TRANSFER_ERROR"
    message = "Object transfer was interrupted"


class SigningError(StorageError):
    """Raised when a signed URL cannot be produced."""

    error_code = "SIGNING_ERROR"
    message = "Failed to sign URL"


class BackendError(StorageError):
    """Raised when the vendor transport reports a failure."""

    error_code = "BACKEND_ERROR"
    message = "Storage backend request failed"


class InvalidKeyError(StorageError):
    """Raised when a key is empty or escapes the backend root."""

    error_code = "INVALID_KEY"
    message = "Invalid object key"

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid object key '{key}': {reason}",
            details={"key": key, "reason": reason},
        )
        self.key = key
        self.reason = reason


class BackendClosedError(StorageError):
    """Raised when a backend is used after it has been closed or released."""

    error_code = "BACKEND_CLOSED"
    message = "Storage backend is no longer available"
