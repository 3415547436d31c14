"""
Abstract base class for storage backends.

Provides a consistent interface for the local filesystem and cloud object
stores. Public operations normalize the incoming path, validate it, log the
outcome and delegate to a handful of vendor primitives that each backend
implements.
"""

import io
import posixpath
import shutil
import tempfile
import time
import weakref
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO

from objectstore.core.exceptions import (
    BackendClosedError,
    BackendError,
    InvalidKeyError,
    NotFoundError,
    SigningError,
    StorageError,
    TransferError,
)
from objectstore.core.logging import StorageLogger
from objectstore.services.storage.paths import key_name, normalize_key
from objectstore.services.storage.policy import UrlPolicy, resolve_endpoint

COPY_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StorageObject:
    """
    Metadata about one stored object.

    Objects returned by a backend keep a weak reference to it; use
    ``storage`` to reach the backend.
    """

    path: str  # Canonical key
    last_modified: datetime | None = None
    size: int = 0  # Zero when unknown
    name: str = field(init=False)
    _backend_ref: "weakref.ref[StorageBackend] | None" = field(
        default=None, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", key_name(self.path))

    @property
    def storage(self) -> "StorageBackend":
        """
        The backend that produced this object.

        Raises:
            BackendClosedError: If the backend was closed or released.
        """
        backend = self._backend_ref() if self._backend_ref is not None else None
        if backend is None or backend.closed:
            raise BackendClosedError(
                message=f"Backend for object '{self.path}' is no longer available",
                details={"key": self.path},
            )
        return backend

    @property
    def extension(self) -> str:
        """Get the file extension."""
        return posixpath.splitext(self.name)[1].lower()

    def get(self) -> BinaryIO:
        """Download this object to a temporary local file."""
        return self.storage.get(self.path)

    def get_stream(self) -> BinaryIO:
        """Open a live stream on this object."""
        return self.storage.get_stream(self.path)

    def get_url(self) -> str:
        """Get the access URL for this object."""
        return self.storage.get_url(self.path)


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    #: Short backend name used in logs and temporary file names.
    name: str = "storage"

    #: Exceptions raised by the vendor stream while copying, reported as TransferError.
    transfer_errors: tuple[type[BaseException], ...] = (OSError,)

    def __init__(
        self,
        *,
        endpoint: str | None = None,
        url_policy: UrlPolicy | None = None,
        temp_dir: str | None = None,
        bucket: str | None = None,
        path_style: bool = False,
    ) -> None:
        """
        Initialize the shared backend state.

        Args:
            endpoint: Operator-configured endpoint override.
            url_policy: Public/private URL policy. Public when None.
            temp_dir: Directory for temporary copies made by ``get``.
                Uses the OS default when None.
            bucket: Bucket or container name, if the backend has one.
            path_style: Whether URLs carry the bucket as first path segment.
        """
        self.endpoint_override = endpoint
        self.url_policy = url_policy or UrlPolicy()
        self.temp_dir = temp_dir
        self.bucket = bucket
        self.path_style = path_style
        self._closed = False
        self._log = StorageLogger(self.name)

    # -------------------------------------------------------------------------
    # Vendor primitives
    # -------------------------------------------------------------------------

    @abstractmethod
    def _open_stream(self, key: str) -> BinaryIO:
        """
        Open a readable stream on an object.

        Raises:
            NotFoundError: If the object does not exist.
            BackendError: If the vendor request fails.
        """
        ...

    @abstractmethod
    def _write(self, key: str, content: BinaryIO) -> StorageObject:
        """
        Upload ``content`` in full to ``key``.

        The content is already positioned at its start. A failed write must
        not leave a visible object behind.
        """
        ...

    @abstractmethod
    def _remove(self, key: str) -> None:
        """Delete one object. A missing object is not an error."""
        ...

    @abstractmethod
    def _scan(self, prefix: str) -> Iterable[StorageObject]:
        """Yield every object whose key starts with ``prefix``, all pages drained."""
        ...

    @abstractmethod
    def _default_endpoint(self) -> str:
        """Endpoint used when no override is configured."""
        ...

    def _exists(self, key: str) -> bool:
        try:
            self._open_stream(key).close()
        except NotFoundError:
            return False
        return True

    def _remove_many(self, keys: list[str]) -> None:
        failures: dict[str, str] = {}
        for key in keys:
            try:
                self._remove(key)
            except StorageError as e:
                failures[key] = e.message

        if failures:
            raise BackendError(
                message=f"Failed to delete {len(failures)} of {len(keys)} objects",
                details={"failed": failures},
            )

    def _sign_url(self, key: str, expires_in: int) -> str:
        raise SigningError(
            message=f"The {self.name} backend cannot sign URLs",
            details={"key": key},
        )

    def _close(self) -> None:
        """Release vendor resources."""

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise BackendClosedError(
                message=f"The {self.name} backend has been closed",
            )

    def _endpoint(self) -> str:
        return resolve_endpoint(self.endpoint_override, self._default_endpoint())

    def to_relative_path(self, path: str) -> str:
        """Normalize a key, leading-slash key or URL into a canonical key."""
        return normalize_key(
            path,
            bucket=self.bucket,
            path_style=self.path_style,
        )

    def _key(self, path: str, allow_empty: bool = False) -> str:
        self._ensure_open()
        key = self.to_relative_path(path)
        if not key and not allow_empty:
            raise InvalidKeyError(path, "key is empty")
        return key

    def _make_object(
        self,
        key: str,
        last_modified: datetime | None = None,
        size: int | None = None,
    ) -> StorageObject:
        return StorageObject(
            path=key,
            last_modified=last_modified,
            size=size or 0,
            _backend_ref=weakref.ref(self),
        )

    @staticmethod
    def _as_stream(content: bytes | BinaryIO) -> BinaryIO:
        """Wrap raw bytes, or rewind a seekable stream to its start."""
        if isinstance(content, (bytes, bytearray, memoryview)):
            return io.BytesIO(content)

        seekable = getattr(content, "seekable", None)
        if seekable is not None and seekable():
            content.seek(0)
        return content

    def _materialize(self, key: str, stream: BinaryIO) -> BinaryIO:
        """Copy a stream into a private temporary file positioned at 0."""
        local = tempfile.NamedTemporaryFile(
            mode="w+b",
            prefix=f"{self.name}-",
            suffix=posixpath.splitext(key)[1],
            dir=self.temp_dir,
        )
        try:
            try:
                shutil.copyfileobj(stream, local, COPY_CHUNK_SIZE)
            finally:
                stream.close()
            local.flush()
            local.seek(0)
        except self.transfer_errors as e:
            local.close()
            raise TransferError(
                message=f"Failed to copy object: {e}",
                details={"key": key},
            ) from e
        except BaseException:
            local.close()
            raise
        return local

    @contextmanager
    def _track(self, operation: str, key: str) -> Iterator[dict[str, Any]]:
        """Log the outcome of an operation; extra fields go in the yielded dict."""
        started = time.perf_counter()
        outcome: dict[str, Any] = {}
        try:
            yield outcome
        except StorageError as e:
            self._log.log_operation_failed(operation, key, e.message, e.error_code)
            raise
        self._log.log_operation_completed(
            operation,
            key,
            (time.perf_counter() - started) * 1000,
            size=outcome.get("size"),
        )

    # -------------------------------------------------------------------------
    # Storage contract
    # -------------------------------------------------------------------------

    def get(self, path: str) -> BinaryIO:
        """
        Download an object into a temporary local file.

        Args:
            path: Key, leading-slash key or URL of the object.

        Returns:
            A readable, seekable temporary file positioned at offset 0.
            The caller owns it; closing it removes the file.

        Raises:
            NotFoundError: If the object does not exist.
            TransferError: If the copy is interrupted.
        """
        key = self._key(path)
        with self._track("get", key):
            return self._materialize(key, self._open_stream(key))

    def get_stream(self, path: str) -> BinaryIO:
        """
        Open a single-pass byte stream on an object.

        Args:
            path: Key, leading-slash key or URL of the object.

        Returns:
            A readable stream. The caller must close it.

        Raises:
            NotFoundError: If the object does not exist.
        """
        key = self._key(path)
        with self._track("get_stream", key):
            return self._open_stream(key)

    def put(self, path: str, content: bytes | BinaryIO) -> StorageObject:
        """
        Upload content to storage.

        Args:
            path: Destination key, leading-slash key or URL.
            content: Raw bytes or a binary file-like object. Seekable
                content is rewound to its start before upload.

        Returns:
            StorageObject describing the uploaded key.

        Raises:
            BackendError: If the upload fails or the content cannot be read.
        """
        key = self._key(path)
        with self._track("put", key) as outcome:
            try:
                obj = self._write(key, self._as_stream(content))
            except OSError as e:
                raise BackendError(
                    message=f"Failed to read upload content: {e}",
                    details={"key": key},
                ) from e
            outcome["size"] = obj.size
            return obj

    def delete(self, path: str) -> None:
        """
        Delete an object. Deleting a missing object is not an error.

        Args:
            path: Key, leading-slash key or URL of the object.
        """
        key = self._key(path)
        with self._track("delete", key):
            self._remove(key)

    def delete_many(self, paths: Iterable[str]) -> None:
        """
        Delete several objects.

        Raises:
            BackendError: One aggregate error if any key failed.
        """
        keys = [self._key(path) for path in paths]
        if not keys:
            return
        with self._track("delete_many", f"{len(keys)} keys"):
            self._remove_many(keys)

    def list(self, prefix: str = "") -> list[StorageObject]:
        """
        List objects whose key starts with ``prefix``.

        Args:
            prefix: Key prefix; empty lists everything.

        Returns:
            StorageObjects in backend-defined order.
        """
        key = self._key(prefix, allow_empty=True)
        with self._track("list", key):
            return list(self._scan(key))

    def exists(self, path: str) -> bool:
        """Check if an object exists."""
        key = self._key(path)
        return self._exists(key)

    def get_url(self, path: str) -> str:
        """
        Get an externally usable URL for an object.

        Public backends return the canonical key; the caller prefixes it
        with scheme and endpoint. Private backends return a signed URL
        valid for ``url_policy.expires_in`` seconds.

        Raises:
            SigningError: If the URL cannot be signed.
        """
        key = self._key(path)
        if self.url_policy.is_public:
            return key
        with self._track("get_url", key):
            return self._sign_url(key, self.url_policy.expires_in)

    def get_endpoint(self) -> str:
        """Get the externally reachable host of this backend."""
        self._ensure_open()
        return self._endpoint()

    def close(self) -> None:
        """Close the backend. Further operations raise BackendClosedError."""
        if self._closed:
            return
        self._closed = True
        self._close()

    def __enter__(self) -> "StorageBackend":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
