"""
Exception taxonomy tests.
"""

import pytest

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


@pytest.mark.parametrize(
    "error_class",
    [NotFoundError, TransferError, SigningError, BackendError, InvalidKeyError, BackendClosedError],
)
def test_storage_errors_share_a_base(error_class):
    assert issubclass(error_class, StorageError)
    assert issubclass(error_class, ObjectStoreError)


def test_configuration_error_is_not_a_storage_error():
    assert not issubclass(ConfigurationError, StorageError)


def test_default_message():
    error = BackendError()

    assert error.message == "Storage backend request failed"
    assert str(error) == error.message
    assert error.details == {}


def test_to_dict():
    error = TransferError(message="copy interrupted", details={"key": "a.txt"})

    assert error.to_dict() == {
        "error": {
            "code": "TRANSFER_ERROR",
            "message": "copy interrupted",
            "details": {"key": "a.txt"},
        }
    }


def test_error_code_override():
    error = StorageError(message="throttled", error_code="SLOW_DOWN")

    assert error.error_code == "SLOW_DOWN"
    assert StorageError.error_code == "STORAGE_ERROR"


def test_not_found_carries_key():
    error = NotFoundError("docs/a.txt", details={"bucket": "media"})

    assert error.key == "docs/a.txt"
    assert error.error_code == "OBJECT_NOT_FOUND"
    assert error.details == {"key": "docs/a.txt", "bucket": "media"}


def test_invalid_key_carries_reason():
    error = InvalidKeyError("../x", "path escapes the storage root")

    assert error.reason == "path escapes the storage root"
    assert "../x" in error.message
