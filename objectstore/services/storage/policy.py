"""
Endpoint resolution and URL access policy.

Every backend resolves its externally reachable host the same way: an
operator-configured override always wins, otherwise the backend computes a
default from its bucket and vendor host. ``get_url`` either returns the bare
key (public access) or a signed, expiring URL (private access).
"""

from dataclasses import dataclass
from enum import Enum

from objectstore.core.exceptions import SigningError

DEFAULT_URL_EXPIRES = 3600  # one hour


class AccessMode(str, Enum):
    """How objects in a backend are addressed from the outside."""

    PUBLIC = "public"
    PRIVATE = "private"


# Vendor ACL names, compared after lower-casing and mapping "_" to "-".
_PUBLIC_ACLS = frozenset(
    {
        "public",
        "public-read",
        "public-read-write",
        "publicread",
        "publicreadwrite",
    }
)
_PRIVATE_ACLS = frozenset(
    {
        "private",
        "authenticated-read",
        "authenticatedread",
        "bucket-owner-read",
        "bucketownerread",
        "bucket-owner-full-control",
        "bucketownerfullcontrol",
        "projectprivate",
    }
)


def access_mode_for(acl: str | AccessMode) -> AccessMode:
    """
    Map a vendor ACL name onto public or private access.

    Args:
        acl: Vendor ACL name (e.g. "public-read", "private", "projectPrivate").

    Returns:
        The matching AccessMode.

    Raises:
        SigningError: If the ACL name is not recognized.
    """
    if isinstance(acl, AccessMode):
        return acl

    name = acl.strip().lower().replace("_", "-")
    if name in _PUBLIC_ACLS:
        return AccessMode.PUBLIC
    if name in _PRIVATE_ACLS:
        return AccessMode.PRIVATE

    raise SigningError(
        message=f"Unsupported access control mode: {acl}",
        details={"acl": acl},
    )


@dataclass(frozen=True)
class UrlPolicy:
    """Resolved URL policy for one backend."""

    mode: AccessMode = AccessMode.PUBLIC
    expires_in: int = DEFAULT_URL_EXPIRES

    def __post_init__(self) -> None:
        if self.expires_in <= 0:
            raise SigningError(
                message="Signed URL validity must be positive",
                details={"expires_in": self.expires_in},
            )

    @classmethod
    def from_acl(
        cls,
        acl: str | AccessMode,
        expires_in: int = DEFAULT_URL_EXPIRES,
    ) -> "UrlPolicy":
        """Build a policy from a vendor ACL name."""
        return cls(mode=access_mode_for(acl), expires_in=expires_in)

    @property
    def is_public(self) -> bool:
        return self.mode is AccessMode.PUBLIC


def strip_scheme(url: str) -> str:
    """Drop an http(s) scheme and any trailing slash from a host string."""
    for prefix in ("https://", "http://"):
        if url.lower().startswith(prefix):
            url = url[len(prefix):]
            break
    if url != "/":
        url = url.rstrip("/")
    return url


def resolve_endpoint(override: str | None, default: str) -> str:
    """
    Resolve the externally reachable host for a backend.

    Args:
        override: Operator-configured endpoint. Always wins when set.
        default: Backend-computed default host.

    Returns:
        The endpoint to report from ``get_endpoint``.
    """
    if override:
        return override
    return default
