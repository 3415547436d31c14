"""
Google Cloud Storage backend.

GCS addresses objects path-style (``storage.googleapis.com/<bucket>/<key>``),
so the bucket segment is stripped from rooted paths and URLs.
"""

import json
import mimetypes
from collections.abc import Iterator
from datetime import timedelta
from typing import Any, BinaryIO

from google.api_core import exceptions as gcs_exceptions
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage as gcs_storage
from pydantic import BaseModel, ConfigDict, Field

from objectstore.core.exceptions import (
    BackendError,
    ConfigurationError,
    NotFoundError,
    SigningError,
    StorageError,
)
from objectstore.core.logging import get_logger
from objectstore.services.storage.base import StorageBackend, StorageObject
from objectstore.services.storage.policy import DEFAULT_URL_EXPIRES, UrlPolicy

logger = get_logger(__name__)

GCS_HOST = "storage.googleapis.com"


class GCSConfig(BaseModel):
    """Google Cloud Storage backend configuration."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., description="GCS bucket name")
    project: str | None = Field(default=None, description="GCP project id")
    service_account_json: str | None = Field(
        default=None, description="Service account key as a JSON document"
    )
    endpoint: str | None = Field(default=None, description="Endpoint override")
    acl: str = Field(default="public-read", description="Access control mode")
    url_expires: int = Field(
        default=DEFAULT_URL_EXPIRES, description="Signed URL validity in seconds"
    )
    temp_dir: str | None = Field(default=None, description="Directory for Get copies")


class GCSBackend(StorageBackend):
    """Google Cloud Storage implementation.

    Requires ``google-cloud-storage``. Credentials come from the configured
    service account JSON, or from the environment's application default
    credentials when none is given.
    """

    name = "gcs"
    transfer_errors = (OSError, gcs_exceptions.GoogleAPIError)

    def __init__(self, config: GCSConfig, client: Any | None = None) -> None:
        super().__init__(
            endpoint=config.endpoint,
            url_policy=UrlPolicy.from_acl(config.acl, config.url_expires),
            temp_dir=config.temp_dir,
            bucket=config.bucket,
            path_style=True,
        )
        self.config = config
        self._owns_client = client is None
        self.client = client if client is not None else self._create_client(config)
        self._bucket = self.client.bucket(config.bucket)

        logger.info("gcs_storage_initialized", bucket=config.bucket)

    @staticmethod
    def _create_client(config: GCSConfig) -> Any:
        if not config.service_account_json:
            return gcs_storage.Client(project=config.project)

        try:
            info = json.loads(config.service_account_json)
        except ValueError as e:
            raise ConfigurationError(
                message="GCS service account JSON is not valid JSON",
                details={"bucket": config.bucket},
            ) from e
        return gcs_storage.Client.from_service_account_info(info, project=config.project)

    def _translate(
        self,
        e: gcs_exceptions.GoogleAPIError,
        key: str,
        action: str,
    ) -> StorageError:
        """Map a google-api-core failure onto the storage error taxonomy."""
        if isinstance(e, gcs_exceptions.NotFound):
            return NotFoundError(key, details={"bucket": self.config.bucket})
        return BackendError(
            message=f"Failed to {action} in GCS: {e}",
            details={
                "key": key,
                "bucket": self.config.bucket,
                "code": getattr(e, "code", None),
            },
        )

    def _open_stream(self, key: str) -> BinaryIO:
        blob = self._bucket.blob(key)
        try:
            found = blob.exists()
        except gcs_exceptions.GoogleAPIError as e:
            raise self._translate(e, key, "download") from e

        if not found:
            raise NotFoundError(key, details={"bucket": self.config.bucket})
        return blob.open("rb")

    def _write(self, key: str, content: BinaryIO) -> StorageObject:
        blob = self._bucket.blob(key)
        try:
            blob.upload_from_file(content, content_type=self._content_type(key))
        except gcs_exceptions.GoogleAPIError as e:
            raise self._translate(e, key, "upload") from e

        return self._make_object(key, last_modified=blob.updated, size=blob.size)

    @staticmethod
    def _content_type(key: str) -> str | None:
        content_type, _ = mimetypes.guess_type(key)
        return content_type

    def _remove(self, key: str) -> None:
        try:
            self._bucket.blob(key).delete()
        except gcs_exceptions.NotFound:
            return
        except gcs_exceptions.GoogleAPIError as e:
            raise self._translate(e, key, "delete") from e

    def _scan(self, prefix: str) -> Iterator[StorageObject]:
        try:
            for blob in self.client.list_blobs(self._bucket, prefix=prefix or None):
                yield self._make_object(
                    blob.name, last_modified=blob.updated, size=blob.size
                )
        except gcs_exceptions.GoogleAPIError as e:
            raise self._translate(e, prefix, "list objects") from e

    def _exists(self, key: str) -> bool:
        try:
            return bool(self._bucket.blob(key).exists())
        except gcs_exceptions.GoogleAPIError as e:
            raise self._translate(e, key, "check object") from e

    def _sign_url(self, key: str, expires_in: int) -> str:
        try:
            return self._bucket.blob(key).generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=expires_in),
                method="GET",
            )
        except (AttributeError, TypeError, ValueError, GoogleAuthError) as e:
            # Credentials without a private key cannot sign
            raise SigningError(
                message=f"Failed to sign GCS URL: {e}",
                details={"key": key, "bucket": self.config.bucket},
            ) from e

    def _default_endpoint(self) -> str:
        return GCS_HOST

    def _close(self) -> None:
        if self._owns_client:
            self.client.close()
