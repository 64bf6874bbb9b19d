"""
Local Blob Store Implementation

Filesystem implementation of IBlobStore for development and single-node
deployments. Capabilities are HMAC signed URLs served by this service's
own /api/v1/blobs endpoint, which calls write_object / open_object.
"""

import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import BinaryIO, List, Optional

from ..domain.clock import Clock, utcnow
from ..domain.errors import StorageBackendUnavailableError
from ..domain.file_storage.blob_store import IBlobStore, StoredObject
from ..domain.file_storage.value_objects import TransferHandle
from .url_signer import UrlSigner

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class BlobTooLargeError(ValueError):
    """Raised when a PUT body exceeds the capability's max_bytes."""
    pass


class BlobExistsError(ValueError):
    """Raised when a PUT targets an object that is already stored."""
    pass


class LocalBlobStore(IBlobStore):
    """
    Local filesystem implementation of IBlobStore.

    Layout: ``<base_path>/<namespace>/<object key>``. Writes go to a
    temporary file that is hard-linked into place, so readers never see a
    partially written object and a stored object is never replaced.

    Attributes:
        base_path: Root directory of all namespaces
        signer: UrlSigner used for capabilities
    """

    def __init__(self, base_path: str, signer: UrlSigner, clock: Clock = utcnow):
        """
        Initialize the local blob store.

        Args:
            base_path: Root directory (created if missing)
            signer: Signs and verifies capability URLs
            clock: Source of the current time
        """
        self.base_path = Path(base_path).resolve()
        self.signer = signer
        self.clock = clock
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageBackendUnavailableError(
                f"Failed to create storage directory {self.base_path}: {e}", original_error=e
            ) from e

    # Paths

    def _namespace_path(self, namespace: str) -> Path:
        if not namespace or "/" in namespace or "\\" in namespace or namespace in (".", ".."):
            raise ValueError(f"Invalid namespace: {namespace!r}")
        return self.base_path / namespace

    def _object_path(self, namespace: str, key: str) -> Path:
        if not key or key.startswith("/") or "\\" in key:
            raise ValueError(f"Invalid object key: {key!r}")
        if any(part in ("", ".", "..") for part in key.split("/")):
            raise ValueError(f"Invalid object key: {key!r}")
        root = self._namespace_path(namespace)
        path = (root / key).resolve()
        if root.resolve() not in path.parents:
            raise ValueError(f"Object key escapes its namespace: {key!r}")
        return path

    # Namespaces

    def create_namespace(self, name: str) -> bool:
        path = self._namespace_path(name)
        try:
            path.mkdir(parents=False, exist_ok=False)
            return True
        except FileExistsError:
            return False
        except OSError as e:
            raise StorageBackendUnavailableError(
                f"Failed to create namespace {name}: {e}", original_error=e
            ) from e

    def namespace_exists(self, name: str) -> bool:
        return self._namespace_path(name).is_dir()

    # Capabilities

    def issue_upload_capability(
        self,
        namespace: str,
        key: str,
        content_type: str,
        ttl: timedelta,
        max_bytes: Optional[int] = None,
    ) -> TransferHandle:
        self._object_path(namespace, key)
        expires_at = self._expiry(ttl)
        url = self.signer.generate_signed_url("PUT", namespace, key, expires_at, max_bytes)
        return TransferHandle(
            url=url,
            method="PUT",
            expires_at=expires_at,
            headers={"Content-Type": content_type},
        )

    def issue_download_capability(
        self,
        namespace: str,
        key: str,
        ttl: timedelta,
        file_name: Optional[str] = None,
    ) -> TransferHandle:
        self._object_path(namespace, key)
        expires_at = self._expiry(ttl)
        url = self.signer.generate_signed_url("GET", namespace, key, expires_at)
        return TransferHandle(url=url, method="GET", expires_at=expires_at)

    def _expiry(self, ttl: timedelta) -> datetime:
        # Signed expiries have second resolution
        return (self.clock() + ttl).replace(microsecond=0)

    def verify_capability(
        self,
        method: str,
        namespace: str,
        key: str,
        expires: int,
        signature: str,
        max_bytes: Optional[int] = None,
    ) -> bool:
        """
        Check a capability presented to the blob endpoint.

        Returns:
            True if the signature matches and the capability has not expired
        """
        if not self.signer.validate_signature(method, namespace, key, expires, signature, max_bytes):
            return False
        return self.signer.epoch(self.clock()) < expires

    # Objects

    def write_object(
        self, namespace: str, key: str, stream: BinaryIO, max_bytes: Optional[int] = None
    ) -> int:
        """
        Store a request body as an object.

        Returns:
            Bytes written

        Raises:
            BlobTooLargeError: If the body exceeds max_bytes (nothing is stored)
            BlobExistsError: If the object already exists (it is left untouched)
            StorageBackendUnavailableError: On filesystem errors
        """
        path = self._object_path(namespace, key)
        if not self._namespace_path(namespace).is_dir():
            raise StorageBackendUnavailableError(f"Namespace {namespace} does not exist")
        if path.exists():
            raise BlobExistsError(f"Object {namespace}/{key} already exists")

        written = 0
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=".upload-")
            with os.fdopen(fd, "wb") as out:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise BlobTooLargeError(
                            f"Upload exceeds the allowed {max_bytes} bytes"
                        )
                    out.write(chunk)
            try:
                # Create-only publish: link fails if another writer got there first
                os.link(tmp_name, path)
            except FileExistsError:
                raise BlobExistsError(f"Object {namespace}/{key} already exists")
            return written
        except OSError as e:
            raise StorageBackendUnavailableError(
                f"Failed to write object {namespace}/{key}: {e}", original_error=e
            ) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)

    def open_object(self, namespace: str, key: str) -> Optional[BinaryIO]:
        """Open an object for reading; the caller closes the stream."""
        path = self._object_path(namespace, key)
        try:
            return open(path, "rb")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageBackendUnavailableError(
                f"Failed to read object {namespace}/{key}: {e}", original_error=e
            ) from e

    def object_size(self, namespace: str, key: str) -> Optional[int]:
        path = self._object_path(namespace, key)
        try:
            return path.stat().st_size if path.is_file() else None
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageBackendUnavailableError(
                f"Failed to stat object {namespace}/{key}: {e}", original_error=e
            ) from e

    def delete_object(self, namespace: str, key: str) -> None:
        path = self._object_path(namespace, key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageBackendUnavailableError(
                f"Failed to delete object {namespace}/{key}: {e}", original_error=e
            ) from e

    def list_objects(self, namespace: str, prefix: str = "") -> List[StoredObject]:
        root = self._namespace_path(namespace)
        if not root.is_dir():
            return []

        objects = []
        try:
            for dirpath, _, filenames in os.walk(root):
                for filename in filenames:
                    if filename.startswith(".upload-"):
                        continue
                    full = Path(dirpath) / filename
                    key = full.relative_to(root).as_posix()
                    if not key.startswith(prefix):
                        continue
                    stat = full.stat()
                    objects.append(StoredObject(
                        key=key,
                        size_bytes=stat.st_size,
                        updated_at=datetime.fromtimestamp(stat.st_mtime, timezone.utc).replace(tzinfo=None),
                    ))
        except OSError as e:
            raise StorageBackendUnavailableError(
                f"Failed to list namespace {namespace}: {e}", original_error=e
            ) from e
        return sorted(objects, key=lambda obj: obj.key)

    def health_check(self) -> bool:
        return self.base_path.is_dir() and os.access(self.base_path, os.W_OK)
