"""
Blob Store Interface

Abstract contract for the object store that holds file contents.
This abstraction keeps the domain layer infrastructure-agnostic: the
coordinator only ever hands out time-limited capabilities and checks
object presence, it never moves file bytes itself.

Contract Guarantees:
- Transient backend failures surface as StorageBackendUnavailableError
  so callers can retry them with a RetryPolicy
- create_namespace() and delete_object() are idempotent
- object_size() returns None for a missing object (no exceptions)
- Capabilities are enforced by the backend: expired or tampered handles
  are rejected there, not in the coordinator
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from .value_objects import TransferHandle


@dataclass(frozen=True)
class StoredObject:
    """Listing entry for an object in a namespace."""

    key: str
    size_bytes: int
    updated_at: Optional[datetime]


class IBlobStore(ABC):
    """Unified interface for blob backends (Google Cloud Storage, local disk)."""

    @abstractmethod
    def create_namespace(self, name: str) -> bool:
        """
        Create a namespace (bucket).

        Args:
            name: Namespace name

        Returns:
            True if it was created, False if it already existed

        Raises:
            StorageBackendUnavailableError: On transient backend failure
        """
        pass  # pragma: no cover

    @abstractmethod
    def namespace_exists(self, name: str) -> bool:
        """
        Check that a namespace is reachable.

        Raises:
            StorageBackendUnavailableError: On transient backend failure
        """
        pass  # pragma: no cover

    @abstractmethod
    def issue_upload_capability(
        self,
        namespace: str,
        key: str,
        content_type: str,
        ttl: timedelta,
        max_bytes: Optional[int] = None,
    ) -> TransferHandle:
        """
        Mint a write capability for one object.

        Args:
            namespace: Namespace holding the object
            key: Object key
            content_type: Content type the upload must declare
            ttl: How long the capability stays valid
            max_bytes: Largest body the backend should accept, if supported

        Returns:
            TransferHandle the caller uses directly against the backend
        """
        pass  # pragma: no cover

    @abstractmethod
    def issue_download_capability(
        self,
        namespace: str,
        key: str,
        ttl: timedelta,
        file_name: Optional[str] = None,
    ) -> TransferHandle:
        """
        Mint a read capability for one object.

        Args:
            namespace: Namespace holding the object
            key: Object key
            ttl: How long the capability stays valid
            file_name: Download file name suggested to the client
        """
        pass  # pragma: no cover

    @abstractmethod
    def object_size(self, namespace: str, key: str) -> Optional[int]:
        """
        HEAD-style lookup of an object.

        Returns:
            Size in bytes, or None if the object does not exist

        Raises:
            StorageBackendUnavailableError: On transient backend failure
        """
        pass  # pragma: no cover

    def object_exists(self, namespace: str, key: str) -> bool:
        return self.object_size(namespace, key) is not None

    @abstractmethod
    def delete_object(self, namespace: str, key: str) -> None:
        """
        Delete an object. Deleting a missing object succeeds.

        Raises:
            StorageBackendUnavailableError: On transient backend failure
        """
        pass  # pragma: no cover

    @abstractmethod
    def list_objects(self, namespace: str, prefix: str = "") -> List[StoredObject]:
        """
        List objects in a namespace, used by out-of-band reconciliation.

        Raises:
            StorageBackendUnavailableError: On transient backend failure
        """
        pass  # pragma: no cover
