"""
Local filesystem storage backend.

Objects are plain files under a root directory, with directories mirroring
key prefixes. Used for development and small-scale deployments.
"""

import contextlib
import os
import shutil
import tempfile
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from pydantic import BaseModel, ConfigDict, Field

from objectstore.core.exceptions import BackendError, InvalidKeyError, NotFoundError
from objectstore.core.logging import get_logger
from objectstore.services.storage.base import (
    COPY_CHUNK_SIZE,
    StorageBackend,
    StorageObject,
)

logger = get_logger(__name__)

# In-flight uploads are written next to their target under this name pattern.
PARTIAL_PREFIX = ".upload-"
PARTIAL_SUFFIX = ".partial"


class FileSystemConfig(BaseModel):
    """Filesystem backend configuration."""

    model_config = ConfigDict(frozen=True)

    base_path: str = Field(..., description="Root directory for stored objects")
    endpoint: str | None = Field(default=None, description="Endpoint override")
    temp_dir: str | None = Field(default=None, description="Directory for Get copies")


def _is_partial(path: Path) -> bool:
    return path.name.startswith(PARTIAL_PREFIX) and path.name.endswith(PARTIAL_SUFFIX)


class FileSystemBackend(StorageBackend):
    """Local filesystem storage implementation."""

    name = "filesystem"

    def __init__(self, config: FileSystemConfig) -> None:
        """
        Initialize local storage backend.

        Args:
            config: Backend configuration; the root directory is created
                if it does not exist.
        """
        super().__init__(endpoint=config.endpoint, temp_dir=config.temp_dir)
        self.config = config
        self.base_path = Path(config.base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info("filesystem_storage_initialized", base_path=str(self.base_path))

    def to_relative_path(self, path: str) -> str:
        """Normalize a key, also accepting absolute paths under the root."""
        base = str(self.base_path)
        if path == base or path.startswith(base + os.sep):
            path = path[len(base):].replace(os.sep, "/") or "/"
        return super().to_relative_path(path)

    def _get_full_path(self, key: str) -> Path:
        """Get full filesystem path for a key."""
        full_path = (self.base_path / key).resolve()

        # Prevent directory traversal attacks
        if full_path != self.base_path and self.base_path not in full_path.parents:
            raise InvalidKeyError(key, "path escapes the storage root")

        return full_path

    def _create_object(self, path: Path, key: str) -> StorageObject:
        """Create StorageObject from filesystem path."""
        stat = path.stat()
        return self._make_object(
            key,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            size=stat.st_size,
        )

    def _open_stream(self, key: str) -> BinaryIO:
        full_path = self._get_full_path(key)
        try:
            return open(full_path, "rb")  # noqa: SIM115
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise NotFoundError(key) from e
        except OSError as e:
            raise BackendError(
                message=f"Failed to open object: {e}",
                details={"key": key},
            ) from e

    def _write(self, key: str, content: BinaryIO) -> StorageObject:
        full_path = self._get_full_path(key)

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)

            # Write beside the target, then swap into place
            fd, partial = tempfile.mkstemp(
                prefix=PARTIAL_PREFIX, suffix=PARTIAL_SUFFIX, dir=full_path.parent
            )
            try:
                with os.fdopen(fd, "wb") as f:
                    shutil.copyfileobj(content, f, COPY_CHUNK_SIZE)
                os.chmod(partial, 0o644)
                os.replace(partial, full_path)
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(partial)
                raise

            return self._create_object(full_path, key)

        except OSError as e:
            raise BackendError(
                message=f"Failed to write object: {e}",
                details={"key": key},
            ) from e

    def _remove(self, key: str) -> None:
        full_path = self._get_full_path(key)

        try:
            full_path.unlink()
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            return
        except OSError as e:
            raise BackendError(
                message=f"Failed to delete object: {e}",
                details={"key": key},
            ) from e

        # Clean up empty parent directories
        parent = full_path.parent
        while parent != self.base_path:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    def _scan(self, prefix: str) -> Iterator[StorageObject]:
        directory = prefix.rsplit("/", 1)[0] if "/" in prefix else ""
        search_path = self._get_full_path(directory) if directory else self.base_path

        if not search_path.is_dir():
            return

        for path in sorted(search_path.rglob("*")):
            if _is_partial(path) or not path.is_file():
                continue

            key = path.relative_to(self.base_path).as_posix()
            if not key.startswith(prefix):
                continue

            try:
                yield self._create_object(path, key)
            except FileNotFoundError:
                # Deleted while listing
                continue

    def _exists(self, key: str) -> bool:
        return self._get_full_path(key).is_file()

    def _default_endpoint(self) -> str:
        return "/"
