"""
Behavior every storage backend shares.

Runs against the filesystem and in-memory backends; the cloud backends are
covered with stubbed clients in their own modules.
"""

import io
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from objectstore.core.exceptions import (
    BackendClosedError,
    BackendError,
    InvalidKeyError,
    NotFoundError,
    TransferError,
)
from objectstore.services.storage.base import StorageBackend


class _BrokenStream:
    """Stream whose connection drops after the first chunk."""

    def __init__(self) -> None:
        self.closed = False
        self._chunks = [b"partial data"]

    def read(self, size: int = -1) -> bytes:
        if self._chunks:
            return self._chunks.pop()
        raise OSError("connection reset by peer")

    def close(self) -> None:
        self.closed = True


class _UnreadableUpload:
    """Upload source whose first read fails."""

    def read(self, size: int = -1) -> bytes:
        raise OSError("input/output error")


# =============================================================================
# Put / Get
# =============================================================================


@pytest.mark.parametrize("size", [0, 1, 4096, 3 * 1024 * 1024 + 7])
def test_round_trip(backend: StorageBackend, size: int):
    data = os.urandom(size)

    obj = backend.put("dir/blob.bin", data)

    assert obj.path == "dir/blob.bin"
    assert obj.name == "blob.bin"
    assert obj.size == size
    assert obj.last_modified is not None

    with backend.get("dir/blob.bin") as f:
        assert f.seekable()
        assert f.tell() == 0
        assert f.read() == data


def test_put_accepts_stream(backend: StorageBackend):
    backend.put("a.txt", io.BytesIO(b"streamed"))

    with backend.get("a.txt") as f:
        assert f.read() == b"streamed"


def test_put_rewinds_consumed_stream(backend: StorageBackend):
    content = io.BytesIO(b"hello world")
    content.read()

    backend.put("a.txt", content)
    backend.put("b.txt", content)

    for key in ("a.txt", "b.txt"):
        with backend.get(key) as f:
            assert f.read() == b"hello world"


def test_put_overwrites(backend: StorageBackend):
    backend.put("a.txt", b"first")
    obj = backend.put("a.txt", b"second version")

    assert obj.size == len(b"second version")
    with backend.get("a.txt") as f:
        assert f.read() == b"second version"


def test_unreadable_content_raises_backend_error(backend: StorageBackend):
    with pytest.raises(BackendError) as exc_info:
        backend.put("a.txt", _UnreadableUpload())  # type: ignore[arg-type]

    assert exc_info.value.details["key"] == "a.txt"
    assert not backend.exists("a.txt")
    assert backend.list() == []


def test_equivalent_paths_address_one_object(backend: StorageBackend):
    backend.put("/docs/a.txt", b"x")

    assert backend.exists("docs/a.txt")
    assert backend.exists("https://files.example.com/docs/a.txt")
    assert [obj.path for obj in backend.list()] == ["docs/a.txt"]


def test_get_missing_raises(backend: StorageBackend):
    with pytest.raises(NotFoundError) as exc_info:
        backend.get("missing.txt")

    assert exc_info.value.key == "missing.txt"


def test_get_stream_missing_raises(backend: StorageBackend):
    with pytest.raises(NotFoundError):
        backend.get_stream("/missing.txt")


@pytest.mark.parametrize("path", ["", "/", "https://files.example.com/"])
def test_empty_key_rejected(backend: StorageBackend, path: str):
    with pytest.raises(InvalidKeyError):
        backend.put(path, b"x")

    with pytest.raises(InvalidKeyError):
        backend.get(path)


def test_get_stream_reads_content(backend: StorageBackend):
    backend.put("a.txt", b"streamed bytes")

    stream = backend.get_stream("a.txt")
    try:
        assert stream.read() == b"streamed bytes"
    finally:
        stream.close()


# =============================================================================
# Temporary copies
# =============================================================================


def test_get_copies_into_temp_dir(backend: StorageBackend, temp_dir: Path):
    backend.put("docs/report.pdf", b"%PDF")

    f = backend.get("docs/report.pdf")
    try:
        path = Path(f.name)
        assert path.parent == temp_dir
        assert path.suffix == ".pdf"
    finally:
        f.close()

    assert list(temp_dir.iterdir()) == []


def test_concurrent_gets_use_separate_copies(backend: StorageBackend):
    data = os.urandom(256 * 1024)
    backend.put("shared.bin", data)

    with ThreadPoolExecutor(max_workers=4) as pool:
        files = list(pool.map(backend.get, ["shared.bin"] * 4))

    try:
        assert len({f.name for f in files}) == 4
        for f in files:
            assert f.tell() == 0
            assert f.read() == data
    finally:
        for f in files:
            f.close()


def test_interrupted_copy_leaves_nothing_behind(
    backend: StorageBackend,
    temp_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
):
    broken = _BrokenStream()
    monkeypatch.setattr(backend, "_open_stream", lambda key: broken)

    with pytest.raises(TransferError) as exc_info:
        backend.get("a.txt")

    assert exc_info.value.details == {"key": "a.txt"}
    assert broken.closed
    assert list(temp_dir.iterdir()) == []


# =============================================================================
# List / Delete
# =============================================================================


def _populate(backend: StorageBackend) -> None:
    for key in ("dir/a.txt", "dir/b.txt", "dir/sub/c.txt", "dirt.txt", "other/d.txt"):
        backend.put(key, key.encode())


def test_list_by_directory_prefix(backend: StorageBackend):
    _populate(backend)

    listed = backend.list("dir/")

    assert {obj.path for obj in listed} == {"dir/a.txt", "dir/b.txt", "dir/sub/c.txt"}
    sizes = {obj.path: obj.size for obj in listed}
    assert sizes["dir/a.txt"] == len(b"dir/a.txt")


def test_list_prefix_is_plain_string_match(backend: StorageBackend):
    _populate(backend)

    assert {obj.path for obj in backend.list("dir")} == {
        "dir/a.txt",
        "dir/b.txt",
        "dir/sub/c.txt",
        "dirt.txt",
    }


def test_list_everything(backend: StorageBackend):
    _populate(backend)
    assert len(backend.list()) == 5


def test_list_normalizes_prefix(backend: StorageBackend):
    _populate(backend)
    assert {obj.path for obj in backend.list("/other/")} == {"other/d.txt"}


def test_list_unknown_prefix_is_empty(backend: StorageBackend):
    _populate(backend)
    assert backend.list("nowhere/deep/") == []


def test_listed_objects_reach_their_backend(backend: StorageBackend):
    backend.put("dir/a.txt", b"payload")

    [obj] = backend.list("dir/")

    with obj.get() as f:
        assert f.read() == b"payload"


def test_delete_is_idempotent(backend: StorageBackend):
    backend.put("a.txt", b"x")

    backend.delete("a.txt")
    backend.delete("a.txt")

    assert not backend.exists("a.txt")
    with pytest.raises(NotFoundError):
        backend.get("a.txt")


def test_delete_many(backend: StorageBackend):
    _populate(backend)

    backend.delete_many(["dir/a.txt", "/dir/b.txt", "never-existed.txt"])

    assert {obj.path for obj in backend.list("dir/")} == {"dir/sub/c.txt"}


def test_delete_many_empty_is_noop(backend: StorageBackend):
    backend.delete_many([])


# =============================================================================
# URLs and endpoints
# =============================================================================


def test_public_url_is_canonical_key(backend: StorageBackend):
    backend.put("docs/a.txt", b"x")
    assert backend.get_url("/docs/a.txt") == "docs/a.txt"


def test_endpoint_override_wins(backend_factory):
    backend = backend_factory(endpoint="cdn.example.com")

    assert backend.get_endpoint() == "cdn.example.com"
    assert backend.to_relative_path("https://cdn.example.com/a/b.txt") == "a/b.txt"


def test_key_resembling_endpoint_is_kept(backend_factory):
    backend = backend_factory(endpoint="cdn.example.com")

    obj = backend.put("cdn.example.com/logo.png", b"x")

    assert obj.path == "cdn.example.com/logo.png"
    assert [o.path for o in backend.list()] == ["cdn.example.com/logo.png"]


# =============================================================================
# Lifecycle
# =============================================================================


def test_closed_backend_rejects_operations(backend: StorageBackend):
    obj = backend.put("a.txt", b"x")
    backend.close()
    backend.close()

    assert backend.closed
    with pytest.raises(BackendClosedError):
        backend.put("b.txt", b"x")
    with pytest.raises(BackendClosedError):
        backend.list()
    with pytest.raises(BackendClosedError):
        obj.get()


def test_context_manager_closes(backend_factory):
    with backend_factory() as backend:
        backend.put("a.txt", b"x")

    assert backend.closed
