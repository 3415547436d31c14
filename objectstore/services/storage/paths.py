"""
Path normalization shared by every storage backend.

Backends accept three shapes of input for the same object:

    "a/b.txt"                          bare key
    "/a/b.txt"                         leading-slash key
    "https://bucket.host/a/b.txt"      URL on the backend's own endpoint

All of them reduce to the canonical key "a/b.txt" used for vendor calls.
Anything that is not a scheme + host URL is taken literally, so
"cdn.example.com/logo.png" is a key, not a host-prefixed path.
Normalization is a pure function of the input and the backend's addressing
mode; it never touches the network.
"""

import re
from urllib.parse import unquote, urlsplit

# scheme (optional) + "//" + host
_URL_PATTERN = re.compile(r"^(?:https?:)?//[^/\s]+", re.IGNORECASE)


def is_absolute_url(path: str) -> bool:
    """Check whether ``path`` is a scheme + host URL rather than a key."""
    return bool(_URL_PATTERN.match(path))


def _url_path(path: str) -> str:
    """Percent-decoded path component of an absolute URL."""
    return unquote(urlsplit(path).path) or "/"


def _strip_bucket(key: str, bucket: str) -> str:
    if key == bucket:
        return ""
    if key.startswith(bucket + "/"):
        return key[len(bucket) + 1:].lstrip("/")
    return key


def normalize_key(
    path: str,
    *,
    bucket: str | None = None,
    path_style: bool = False,
) -> str:
    """
    Reduce a URL or loosely-slashed path to a canonical object key.

    Args:
        path: Bare key, leading-slash key, or absolute URL.
        bucket: Bucket name, stripped from rooted paths in path-style mode.
        path_style: Whether the backend embeds the bucket as the first
            path segment.

    Returns:
        The canonical key, without leading slash, host, scheme or bucket
        segment. Empty input yields an empty key. The result is never
        itself a URL, so normalizing it again returns it unchanged.
    """
    key = path
    rooted = False

    while True:
        if is_absolute_url(key):
            rooted, key = True, _url_path(key)
        elif key.startswith("/"):
            rooted = True

        key = key.lstrip("/")

        # Only rooted input carries the bucket segment. A bare key that starts
        # with the bucket name is a real key and is kept.
        if path_style and bucket and rooted:
            key = _strip_bucket(key, bucket)

        # A URL nested in the path is unwrapped as well
        if not is_absolute_url(key):
            return key


def key_name(key: str) -> str:
    """Final path segment of a key."""
    return key.rstrip("/").rsplit("/", 1)[-1]
