"""
Pytest configuration and fixtures.
"""

from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from objectstore.core.config import Settings
from objectstore.services.storage.base import StorageBackend
from objectstore.services.storage.factory import reset_storage_backend
from objectstore.services.storage.filesystem import FileSystemBackend, FileSystemConfig
from objectstore.services.storage.memory import InMemoryBackend, MemoryConfig

BackendFactory = Callable[..., StorageBackend]


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Sandboxed directory for temporary copies made by Get."""
    path = tmp_path / "tmp"
    path.mkdir()
    return path


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Root directory for the filesystem backend."""
    return tmp_path / "data"


@pytest.fixture
def test_settings(storage_root: Path, temp_dir: Path) -> Settings:
    """Create test settings."""
    return Settings(
        _env_file=None,
        storage_backend="filesystem",
        local_storage_path=str(storage_root),
        storage_temp_dir=str(temp_dir),
        log_format="console",
    )


@pytest.fixture(autouse=True)
def reset_factory() -> Generator[None, None, None]:
    """Keep the factory singleton from leaking between tests."""
    reset_storage_backend()
    yield
    reset_storage_backend()


@pytest.fixture
def filesystem_backend(storage_root: Path, temp_dir: Path) -> FileSystemBackend:
    return FileSystemBackend(
        FileSystemConfig(base_path=str(storage_root), temp_dir=str(temp_dir))
    )


@pytest.fixture
def memory_backend(temp_dir: Path) -> InMemoryBackend:
    return InMemoryBackend(MemoryConfig(temp_dir=str(temp_dir)))


@pytest.fixture(params=["filesystem", "memory"])
def backend_factory(
    request: pytest.FixtureRequest,
    storage_root: Path,
    temp_dir: Path,
) -> Generator[BackendFactory, None, None]:
    """Build backends of one kind with optional config overrides."""
    created: list[StorageBackend] = []

    def factory(**overrides: object) -> StorageBackend:
        if request.param == "filesystem":
            config = FileSystemConfig(
                base_path=str(storage_root), temp_dir=str(temp_dir), **overrides
            )
            backend: StorageBackend = FileSystemBackend(config)
        else:
            backend = InMemoryBackend(MemoryConfig(temp_dir=str(temp_dir), **overrides))
        created.append(backend)
        return backend

    yield factory

    for backend in created:
        backend.close()


@pytest.fixture
def backend(backend_factory: BackendFactory) -> StorageBackend:
    """A default backend of every conformance-tested kind."""
    return backend_factory()
