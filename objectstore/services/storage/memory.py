"""
In-memory storage backend for development and testing.

Behaves like a small object store: keys map to immutable byte values,
uploads replace values atomically, and private URLs are signed with
HMAC-SHA256 over the key and expiry.
"""

import hashlib
import hmac
import io
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

from objectstore.core.exceptions import NotFoundError, SigningError
from objectstore.core.logging import get_logger
from objectstore.services.storage.base import StorageBackend, StorageObject
from objectstore.services.storage.policy import (
    DEFAULT_URL_EXPIRES,
    UrlPolicy,
    strip_scheme,
)

logger = get_logger(__name__)

MEMORY_HOST = "memory.local"


class MemoryConfig(BaseModel):
    """In-memory backend configuration."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(default="memory", description="Bucket name")
    endpoint: str | None = Field(default=None, description="Endpoint override")
    acl: str = Field(default="public-read", description="Access control mode")
    url_expires: int = Field(
        default=DEFAULT_URL_EXPIRES, description="Signed URL validity in seconds"
    )
    secret: str | None = Field(default=None, description="URL signing secret")
    path_style: bool = Field(default=False, description="Path-style addressing")
    temp_dir: str | None = Field(default=None, description="Directory for Get copies")


@dataclass(frozen=True)
class _Entry:
    data: bytes
    last_modified: datetime


class InMemoryBackend(StorageBackend):
    """Mock object store kept in process memory."""

    name = "memory"

    def __init__(self, config: MemoryConfig | None = None) -> None:
        config = config or MemoryConfig()
        super().__init__(
            endpoint=config.endpoint,
            url_policy=UrlPolicy.from_acl(config.acl, config.url_expires),
            temp_dir=config.temp_dir,
            bucket=config.bucket,
            path_style=config.path_style,
        )
        self.config = config
        self._objects: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        logger.debug("memory_storage_initialized", bucket=config.bucket)

    def clear(self) -> None:
        """Drop every stored object."""
        with self._lock:
            self._objects.clear()

    def _open_stream(self, key: str) -> BinaryIO:
        with self._lock:
            entry = self._objects.get(key)
        if entry is None:
            raise NotFoundError(key)
        return io.BytesIO(entry.data)

    def _write(self, key: str, content: BinaryIO) -> StorageObject:
        data = content.read()
        entry = _Entry(data=bytes(data), last_modified=datetime.now(timezone.utc))
        with self._lock:
            self._objects[key] = entry
        return self._make_object(key, last_modified=entry.last_modified, size=len(data))

    def _remove(self, key: str) -> None:
        with self._lock:
            self._objects.pop(key, None)

    def _scan(self, prefix: str) -> Iterator[StorageObject]:
        with self._lock:
            snapshot = sorted(self._objects.items())
        for key, entry in snapshot:
            if key.startswith(prefix):
                yield self._make_object(
                    key, last_modified=entry.last_modified, size=len(entry.data)
                )

    def _exists(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    def _sign_url(self, key: str, expires_in: int) -> str:
        if not self.config.secret:
            raise SigningError(
                message="No signing secret configured for the memory backend",
                details={"key": key},
            )

        expires = int(time.time()) + expires_in
        payload = f"GET\n{key}\n{expires}".encode()
        signature = hmac.new(
            self.config.secret.encode(), payload, hashlib.sha256
        ).hexdigest()

        host = strip_scheme(self._endpoint())
        path = quote(key)
        if self.path_style:
            path = f"{quote(self.bucket or '')}/{path}"
        return f"https://{host}/{path}?Expires={expires}&Signature={signature}"

    def _default_endpoint(self) -> str:
        if self.path_style:
            return MEMORY_HOST
        return f"{self.bucket}.{MEMORY_HOST}"
