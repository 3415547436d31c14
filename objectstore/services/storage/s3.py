"""
S3/MinIO storage backend.

Implements StorageBackend for Amazon S3 and S3-compatible services (MinIO,
path-style private deployments).
"""

import mimetypes
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any, BinaryIO

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict, Field

from objectstore.core.exceptions import (
    BackendError,
    NotFoundError,
    SigningError,
    StorageError,
)
from objectstore.core.logging import get_logger
from objectstore.services.storage.base import StorageBackend, StorageObject
from objectstore.services.storage.policy import (
    DEFAULT_URL_EXPIRES,
    UrlPolicy,
    strip_scheme,
)

logger = get_logger(__name__)

# DeleteObjects accepts at most this many keys per request
DELETE_BATCH_SIZE = 1000

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


class S3Config(BaseModel):
    """S3 backend configuration."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., description="S3 bucket name")
    access_key: str | None = Field(default=None, description="AWS access key ID")
    secret_key: str | None = Field(default=None, description="AWS secret access key")
    session_token: str | None = Field(default=None, description="AWS session token")
    region: str = Field(default="us-east-1", description="AWS region")
    s3_endpoint: str | None = Field(
        default=None, description="S3 API endpoint URL (for MinIO/self-hosted)"
    )
    endpoint: str | None = Field(
        default=None, description="Externally reachable host override"
    )
    force_path_style: bool = Field(
        default=False, description="Address the bucket as the first path segment"
    )
    acl: str = Field(default="public-read", description="Canned ACL for uploads")
    url_expires: int = Field(
        default=DEFAULT_URL_EXPIRES, description="Signed URL validity in seconds"
    )
    cache_control: str | None = Field(default=None, description="Cache-Control header")
    temp_dir: str | None = Field(default=None, description="Directory for Get copies")


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class S3Backend(StorageBackend):
    """S3/MinIO storage implementation."""

    name = "s3"
    transfer_errors = (OSError, BotoCoreError)

    def __init__(self, config: S3Config, client: Any | None = None) -> None:
        """
        Initialize S3 storage backend.

        Args:
            config: Backend configuration.
            client: Pre-built boto3 S3 client. Created from ``config`` if None.
        """
        super().__init__(
            endpoint=config.endpoint,
            url_policy=UrlPolicy.from_acl(config.acl, config.url_expires),
            temp_dir=config.temp_dir,
            bucket=config.bucket,
            path_style=config.force_path_style,
        )
        self.config = config
        self._owns_client = client is None
        self.client = client if client is not None else self._create_client(config)

        logger.info(
            "s3_storage_initialized",
            bucket=config.bucket,
            region=config.region,
            path_style=config.force_path_style,
        )

    @staticmethod
    def _create_client(config: S3Config) -> Any:
        """Create a boto3 S3 client from static or default credentials."""
        session = boto3.session.Session(
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            aws_session_token=config.session_token,
            region_name=config.region,
        )

        client_config = BotoConfig(
            signature_version="s3v4",
            s3={"addressing_style": "path" if config.force_path_style else "auto"},
        )

        return session.client(
            "s3",
            endpoint_url=config.s3_endpoint,
            config=client_config,
        )

    def _get_content_type(self, key: str) -> str:
        """Guess content type from file extension."""
        content_type, _ = mimetypes.guess_type(key)
        return content_type or "application/octet-stream"

    def _translate(
        self,
        e: ClientError | BotoCoreError,
        key: str,
        action: str,
    ) -> StorageError:
        """Map a botocore failure onto the storage error taxonomy."""
        if isinstance(e, ClientError):
            code = _error_code(e)
            if code in _NOT_FOUND_CODES:
                return NotFoundError(key, details={"bucket": self.config.bucket})
        else:
            code = type(e).__name__

        return BackendError(
            message=f"Failed to {action} in S3: {e}",
            details={"key": key, "bucket": self.config.bucket, "code": code},
        )

    def _open_stream(self, key: str) -> BinaryIO:
        try:
            response = self.client.get_object(Bucket=self.config.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, key, "download") from e
        return response["Body"]

    def _write(self, key: str, content: BinaryIO) -> StorageObject:
        data = content.read()

        params: dict[str, Any] = {
            "Bucket": self.config.bucket,
            "Key": key,
            "Body": data,
            "ContentType": self._get_content_type(key),
            "ACL": self.config.acl,
        }
        if self.config.cache_control:
            params["CacheControl"] = self.config.cache_control

        try:
            self.client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, key, "upload") from e

        return self._make_object(
            key, last_modified=datetime.now(timezone.utc), size=len(data)
        )

    def _remove(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.config.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return
            raise self._translate(e, key, "delete") from e
        except BotoCoreError as e:
            raise self._translate(e, key, "delete") from e

    def _remove_many(self, keys: list[str]) -> None:
        failures: dict[str, str] = {}

        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            try:
                response = self.client.delete_objects(
                    Bucket=self.config.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
            except (ClientError, BotoCoreError) as e:
                raise self._translate(e, batch[0], "delete objects") from e

            for error in response.get("Errors", []):
                failures[error.get("Key", "")] = error.get("Message") or error.get("Code", "")

        if failures:
            raise BackendError(
                message=f"Failed to delete {len(failures)} of {len(keys)} objects",
                details={"bucket": self.config.bucket, "failed": failures},
            )

    def _scan(self, prefix: str) -> Iterator[StorageObject]:
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.config.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    yield self._make_object(
                        obj["Key"],
                        last_modified=obj.get("LastModified"),
                        size=obj.get("Size"),
                    )
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, prefix, "list objects") from e

    def _exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.config.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return False
            raise self._translate(e, key, "check object") from e
        except BotoCoreError as e:
            raise self._translate(e, key, "check object") from e
        return True

    def _sign_url(self, key: str, expires_in: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.config.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            raise SigningError(
                message=f"Failed to generate presigned URL: {e}",
                details={"key": key, "bucket": self.config.bucket},
            ) from e

    def _default_endpoint(self) -> str:
        host = strip_scheme(self.client.meta.endpoint_url)
        if self.path_style:
            return host
        return f"{self.config.bucket}.{host}"

    def _close(self) -> None:
        if self._owns_client:
            self.client.close()
