"""
Google Cloud Storage Blob Store Implementation

Concrete implementation of IBlobStore on Google Cloud Storage. Every owner
gets their own bucket; capabilities are v4 signed URLs so file bytes never
pass through this service.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, TypeVar

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage
from requests import exceptions as requests_exceptions

from ..domain.clock import Clock, utcnow
from ..domain.errors import StorageBackendUnavailableError
from ..domain.file_storage.blob_store import IBlobStore, StoredObject
from ..domain.file_storage.value_objects import TransferHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures worth retrying: throttling, server side errors, network errors
_TRANSIENT_ERRORS = (
    api_exceptions.TooManyRequests,
    api_exceptions.InternalServerError,
    api_exceptions.BadGateway,
    api_exceptions.ServiceUnavailable,
    api_exceptions.GatewayTimeout,
    api_exceptions.RetryError,
    auth_exceptions.TransportError,
    requests_exceptions.ConnectionError,
    requests_exceptions.Timeout,
    ConnectionError,
    TimeoutError,
)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class GCSBlobStore(IBlobStore):
    """
    Google Cloud Storage implementation of IBlobStore.

    Library errors are translated at this boundary: transient ones become
    retryable StorageBackendUnavailableError, everything else (permissions,
    bad requests) becomes a non-retryable StorageBackendUnavailableError.

    Thread Safety:
        storage.Client is safe to share between threads.

    Attributes:
        client: Google Cloud Storage client
        location: Location used for new buckets
    """

    def __init__(
        self,
        client: storage.Client,
        location: str = "US",
        clock: Clock = utcnow,
    ):
        """
        Initialize the GCS blob store.

        Args:
            client: Storage client whose credentials can create buckets and
                sign URLs
            location: Location for newly created buckets
            clock: Source of the current time
        """
        self.client = client
        self.location = location
        self.clock = clock

    def _call(self, operation: str, func: Callable[[], T]) -> T:
        try:
            return func()
        except _TRANSIENT_ERRORS as e:
            logger.warning(f"Transient GCS error during {operation}: {e}")
            raise StorageBackendUnavailableError(
                f"GCS {operation} failed: {e}", original_error=e
            ) from e
        except (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            logger.error(f"GCS {operation} failed permanently: {e}")
            error = StorageBackendUnavailableError(f"GCS {operation} failed: {e}", original_error=e)
            error.retryable = False
            raise error from e

    # Namespaces

    def create_namespace(self, name: str) -> bool:
        def create() -> bool:
            try:
                bucket = self.client.bucket(name)
                bucket.iam_configuration.uniform_bucket_level_access_enabled = True
                self.client.create_bucket(bucket, location=self.location)
                logger.info(f"Created GCS bucket {name} in {self.location}")
                return True
            except api_exceptions.Conflict:
                return False

        return self._call("create_bucket", create)

    def namespace_exists(self, name: str) -> bool:
        return self._call("bucket_exists", lambda: self.client.bucket(name).exists())

    # Capabilities

    def issue_upload_capability(
        self,
        namespace: str,
        key: str,
        content_type: str,
        ttl: timedelta,
        max_bytes: Optional[int] = None,
    ) -> TransferHandle:
        # Generation 0 matches only a missing object, so the URL cannot overwrite
        headers = {"x-goog-if-generation-match": "0"}
        if max_bytes is not None:
            headers["x-goog-content-length-range"] = f"0,{max_bytes}"

        blob = self.client.bucket(namespace).blob(key)
        url = self._call("generate_signed_url", lambda: blob.generate_signed_url(
            version="v4",
            expiration=ttl,
            method="PUT",
            content_type=content_type,
            headers=dict(headers),
        ))
        headers["Content-Type"] = content_type
        return TransferHandle(
            url=url,
            method="PUT",
            expires_at=self.clock() + ttl,
            headers=headers,
        )

    def issue_download_capability(
        self,
        namespace: str,
        key: str,
        ttl: timedelta,
        file_name: Optional[str] = None,
    ) -> TransferHandle:
        blob = self.client.bucket(namespace).blob(key)
        disposition = f'attachment; filename="{file_name}"' if file_name else None
        url = self._call("generate_signed_url", lambda: blob.generate_signed_url(
            version="v4",
            expiration=ttl,
            method="GET",
            response_disposition=disposition,
        ))
        return TransferHandle(url=url, method="GET", expires_at=self.clock() + ttl)

    # Objects

    def object_size(self, namespace: str, key: str) -> Optional[int]:
        def head() -> Optional[int]:
            try:
                blob = self.client.bucket(namespace).get_blob(key)
            except api_exceptions.NotFound:
                return None
            return int(blob.size) if blob is not None and blob.size is not None else None

        return self._call("get_blob", head)

    def delete_object(self, namespace: str, key: str) -> None:
        def delete() -> None:
            try:
                self.client.bucket(namespace).blob(key).delete()
            except api_exceptions.NotFound:
                return None

        self._call("delete_blob", delete)

    def list_objects(self, namespace: str, prefix: str = "") -> List[StoredObject]:
        def listing() -> List[StoredObject]:
            try:
                blobs = list(self.client.list_blobs(namespace, prefix=prefix or None))
            except api_exceptions.NotFound:
                return []
            return [
                StoredObject(
                    key=blob.name,
                    size_bytes=int(blob.size or 0),
                    updated_at=_naive_utc(blob.updated),
                )
                for blob in blobs
            ]

        return self._call("list_blobs", listing)

    def health_check(self) -> bool:
        """Cheap authenticated call; False when GCS cannot be reached."""
        try:
            next(iter(self.client.list_buckets(max_results=1)), None)
            return True
        except (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            logger.warning(f"GCS health check failed: {e}")
            return False
        except _TRANSIENT_ERRORS as e:
            logger.warning(f"GCS health check failed: {e}")
            return False
