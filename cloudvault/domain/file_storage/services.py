"""
File Storage Services

Domain service coordinating transfers against the blob store with the
metadata catalog and the per-owner quota ledger.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from ..clock import Clock, utcnow
from ..errors import (
    FileNotFoundError,
    FileTooLargeError,
    FolderNotFoundError,
    ForbiddenError,
    InvalidRequestError,
    QuotaExceededError,
    UploadNotFoundError,
)
from ..events import (
    BackendRetryEvent,
    DomainEvent,
    FileDeletedEvent,
    UploadConfirmedEvent,
    UploadRequestedEvent,
    UsageReconciledEvent,
)
from ..retry import RetryPolicy
from .blob_store import IBlobStore, StoredObject
from .entities import FileRecord
from .provisioning import BucketProvisioner
from .repositories import FileCatalog, FolderRepository
from .value_objects import (
    DownloadTicket,
    ObjectKey,
    QuotaPolicyResolver,
    UploadTicket,
    owner_segment,
    sanitize_display_name,
)

T = TypeVar("T")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _discard(event: DomainEvent) -> None:
    return None


def _validate_size(value: Any, field_name: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRequestError(f"{field_name} must be an integer")
    if value < 0:
        raise InvalidRequestError(f"{field_name} must be >= 0, got {value}")
    return value


class TransferCoordinator:
    """
    Domain service brokering uploads, downloads and deletes.

    Capability issuance touches no shared counters and is safe to run in
    parallel. The only shared mutable state is the per-owner usage ledger,
    which is changed exclusively through the catalog's transactional
    commit_upload / remove_file / reconcile_usage operations.
    """

    def __init__(
        self,
        blob_store: IBlobStore,
        catalog: FileCatalog,
        provisioner: BucketProvisioner,
        quota_resolver: QuotaPolicyResolver,
        retry_policy: RetryPolicy,
        upload_ttl: timedelta = timedelta(minutes=5),
        download_ttl: timedelta = timedelta(minutes=5),
        folders: Optional[FolderRepository] = None,
        clock: Clock = utcnow,
        publish: Optional[Callable[[DomainEvent], None]] = None,
    ):
        """
        Initialize TransferCoordinator.

        Args:
            blob_store: Backend that stores object contents
            catalog: Metadata catalog holding records and the usage ledger
            provisioner: Namespace provisioner used before the first upload
            quota_resolver: Maps owners to their tier limits
            retry_policy: Backoff applied to every blob backend call
            upload_ttl: Lifetime of upload capabilities
            download_ttl: Lifetime of download capabilities
            folders: Folder repository used to validate folder ids on confirm
            clock: Source of the current time
            publish: Sink for domain events
        """
        self.blob_store = blob_store
        self.catalog = catalog
        self.provisioner = provisioner
        self.quota_resolver = quota_resolver
        self.retry_policy = retry_policy
        self.upload_ttl = upload_ttl
        self.download_ttl = download_ttl
        self.folders = folders
        self.clock = clock
        self.publish = publish or _discard

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def remaining_quota(self, owner_id: str) -> int:
        policy = self.quota_resolver.policy_for(owner_id)
        return policy.remaining(self.catalog.get_usage(owner_id))

    def request_upload(
        self,
        owner_id: str,
        file_name: Optional[str],
        content_type: Optional[str],
        declared_size: int,
    ) -> UploadTicket:
        """
        Issue a short-lived write capability for a new object.

        Size and quota checks run before any backend contact. The declared
        size is only a precondition check; the capability is bounded by
        the owner's remaining allowance so the backend rejects larger bodies.

        Args:
            owner_id: Owner of the upload
            file_name: Name supplied by the caller
            content_type: MIME type supplied by the caller
            declared_size: Size the caller intends to upload

        Returns:
            UploadTicket with the capability, object key and expiry

        Raises:
            InvalidRequestError: If the size is not a non-negative integer
            FileTooLargeError: If the size exceeds the tier's per-file cap
            QuotaExceededError: If the size exceeds the remaining quota
            ProvisioningFailedError: If the owner's namespace cannot be created
            StorageBackendUnavailableError: If issuing the capability kept failing
        """
        declared_size = _validate_size(declared_size, "declared_size")
        owner_segment(owner_id)

        policy = self.quota_resolver.policy_for(owner_id)
        if declared_size > policy.max_file_bytes:
            raise FileTooLargeError(
                f"Declared size {declared_size} exceeds the {policy.tier.value} tier "
                f"limit of {policy.max_file_bytes} bytes per file"
            )

        remaining = policy.remaining(self.catalog.get_usage(owner_id))
        if declared_size > remaining:
            raise QuotaExceededError(
                f"Declared size {declared_size} exceeds remaining quota of {remaining} bytes"
            )

        namespace = self.provisioner.ensure_namespace(owner_id)
        now = self.clock()
        key = ObjectKey.generate(owner_id, file_name, now)
        max_bytes = min(policy.max_file_bytes, remaining)
        resolved_type = (content_type or "").strip() or DEFAULT_CONTENT_TYPE

        handle = self._call_backend(
            owner_id,
            "issue_upload_capability",
            lambda: self.blob_store.issue_upload_capability(
                namespace, key.value, resolved_type, self.upload_ttl, max_bytes=max_bytes
            ),
        )

        self.publish(UploadRequestedEvent(
            aggregate_id=owner_id,
            occurred_at=now,
            object_key=key.value,
            declared_size=declared_size,
            expires_at=handle.expires_at,
        ))
        return UploadTicket(
            handle=handle,
            object_key=key.value,
            expires_at=handle.expires_at,
            max_bytes=max_bytes,
        )

    def confirm_upload(
        self,
        owner_id: str,
        object_key: str,
        actual_size: int,
        file_name: Optional[str] = None,
        content_type: Optional[str] = None,
        folder_id: Optional[str] = None,
    ) -> FileRecord:
        """
        Record a completed upload and add its size to the owner's usage.

        Confirming an already committed key returns the existing record
        without counting it twice.

        Args:
            owner_id: Owner of the upload
            object_key: Key returned by request_upload
            actual_size: Size of the uploaded object
            file_name: Display name; defaults to the name embedded in the key
            content_type: MIME type; defaults to application/octet-stream
            folder_id: Optional folder to place the file in

        Returns:
            The committed FileRecord

        Raises:
            ForbiddenError: If the key belongs to another owner
            UploadNotFoundError: If no object exists at the key
            InvalidRequestError: If actual_size disagrees with the stored object
            FolderNotFoundError: If folder_id is not one of the owner's folders
            MetadataWriteFailedError: If the catalog commit failed; the
                object is then orphaned until reconciliation
        """
        actual_size = _validate_size(actual_size, "actual_size")
        key = ObjectKey(object_key)
        if not key.belongs_to(owner_id):
            raise ForbiddenError("Object key does not belong to the caller")

        existing = self.catalog.get_file_by_key(key.value)
        if existing is not None:
            if not existing.is_owned_by(owner_id):
                raise ForbiddenError("Object key does not belong to the caller")
            return existing

        binding = self.provisioner.bindings.get(owner_id)
        if binding is None:
            raise UploadNotFoundError(f"No upload exists for key {key.value}")

        stored_size = self._call_backend(
            owner_id,
            "object_size",
            lambda: self.blob_store.object_size(binding.namespace, key.value),
        )
        if stored_size is None:
            raise UploadNotFoundError(f"No object stored at key {key.value}")
        if stored_size != actual_size:
            raise InvalidRequestError(
                f"Reported size {actual_size} does not match stored object size {stored_size}"
            )

        if folder_id:
            self._require_folder(owner_id, folder_id)

        name = sanitize_display_name(file_name) if file_name else key.file_name
        record = FileRecord.create(
            owner_id=owner_id,
            name=name,
            size_bytes=actual_size,
            content_type=(content_type or "").strip() or DEFAULT_CONTENT_TYPE,
            object_key=key.value,
            now=self.clock(),
            folder_id=folder_id or None,
        )

        committed, created = self.catalog.commit_upload(record)

        self.publish(UploadConfirmedEvent(
            aggregate_id=owner_id,
            occurred_at=self.clock(),
            file_id=committed.id,
            object_key=committed.object_key,
            size_bytes=committed.size_bytes if created else 0,
            created=created,
        ))
        return committed

    # ------------------------------------------------------------------
    # Downloads and deletes
    # ------------------------------------------------------------------

    def get_owned_file(self, owner_id: str, file_id: str) -> FileRecord:
        """
        Load a file and check ownership.

        Raises:
            FileNotFoundError: If the file does not exist
            ForbiddenError: If it belongs to someone else
        """
        record = self.catalog.get_file(file_id)
        if record is None:
            raise FileNotFoundError(f"File not found: {file_id}")
        if not record.is_owned_by(owner_id):
            raise ForbiddenError(f"File {file_id} does not belong to the caller")
        return record

    def request_download(self, owner_id: str, file_id: str) -> DownloadTicket:
        """Issue a short-lived read capability for one of the owner's files."""
        record = self.get_owned_file(owner_id, file_id)
        return self.issue_download(record)

    def issue_download(self, record: FileRecord) -> DownloadTicket:
        """
        Issue a read capability for a record whose access was already checked.

        Used by request_download (owner path) and share resolution.
        """
        namespace = self._namespace_of(record.owner_id)
        handle = self._call_backend(
            record.owner_id,
            "issue_download_capability",
            lambda: self.blob_store.issue_download_capability(
                namespace, record.object_key, self.download_ttl, file_name=record.name
            ),
        )
        return DownloadTicket(handle=handle, expires_at=handle.expires_at)

    def delete_file(self, owner_id: str, file_id: str) -> int:
        """
        Delete a file's object and record, then recompute the owner's usage.

        The object goes first. If the backend delete fails the record is
        kept and the error propagates, so every record keeps a backing object.

        Returns:
            The owner's recomputed total after the delete

        Raises:
            FileNotFoundError: If the file does not exist (or was removed concurrently)
            ForbiddenError: If it belongs to someone else
            StorageBackendUnavailableError: If the object could not be deleted
            MetadataWriteFailedError: If the catalog transaction failed
        """
        record = self.get_owned_file(owner_id, file_id)
        namespace = self._namespace_of(owner_id)

        self._call_backend(
            owner_id,
            "delete_object",
            lambda: self.blob_store.delete_object(namespace, record.object_key),
        )

        total = self.catalog.remove_file(owner_id, file_id)
        if total is None:
            raise FileNotFoundError(f"File not found: {file_id}")

        self.publish(FileDeletedEvent(
            aggregate_id=owner_id,
            occurred_at=self.clock(),
            file_id=file_id,
            size_bytes=record.size_bytes,
            total_bytes=total,
        ))
        return total

    # ------------------------------------------------------------------
    # Quota status and reconciliation
    # ------------------------------------------------------------------

    def usage_summary(self, owner_id: str) -> Dict[str, Any]:
        """Read-only quota status for an owner."""
        policy = self.quota_resolver.policy_for(owner_id)
        used = self.catalog.get_usage(owner_id)
        limit = policy.max_total_bytes
        percent = round(used * 100.0 / limit, 2) if limit else 100.0
        return {
            "tier": policy.tier.value,
            "used_bytes": used,
            "limit_bytes": limit,
            "remaining_bytes": policy.remaining(used),
            "max_file_bytes": policy.max_file_bytes,
            "percent_used": min(percent, 100.0),
        }

    def reconcile_usage(self, owner_id: str) -> Tuple[int, int]:
        """
        Rewrite the owner's ledger from their records.

        Returns:
            (previous_total, recomputed_total)
        """
        previous, recomputed = self.catalog.reconcile_usage(owner_id)
        if previous != recomputed:
            self.publish(UsageReconciledEvent(
                aggregate_id=owner_id,
                occurred_at=self.clock(),
                previous_total=previous,
                recomputed_total=recomputed,
            ))
        return previous, recomputed

    def find_orphaned_objects(
        self, owner_id: str, older_than: datetime
    ) -> List[StoredObject]:
        """
        List objects in the owner's namespace that no record points at.

        Objects newer than ``older_than`` are skipped because their upload
        may still be confirmed. Nothing is deleted.
        """
        binding = self.provisioner.bindings.get(owner_id)
        if binding is None:
            return []

        prefix = f"users/{owner_segment(owner_id)}/"
        objects = self._call_backend(
            owner_id,
            "list_objects",
            lambda: self.blob_store.list_objects(binding.namespace, prefix),
        )
        known = set(self.catalog.list_object_keys(owner_id))
        return [
            obj for obj in objects
            if obj.key not in known
            and (obj.updated_at is None or obj.updated_at < older_than)
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_folder(self, owner_id: str, folder_id: str) -> None:
        folder = self.folders.get(folder_id) if self.folders else None
        if folder is None or folder.owner_id != owner_id:
            raise FolderNotFoundError(f"Folder not found: {folder_id}")

    def _namespace_of(self, owner_id: str) -> str:
        binding = self.provisioner.bindings.get(owner_id)
        if binding is not None:
            return binding.namespace
        return self.provisioner.namespace_name(owner_id)

    def _call_backend(self, owner_id: str, operation: str, func: Callable[[], T]) -> T:
        def on_retry(attempt: int, error: BaseException, delay: float) -> None:
            self.publish(BackendRetryEvent(
                aggregate_id=owner_id,
                occurred_at=self.clock(),
                operation=operation,
                attempt=attempt,
                delay_seconds=delay,
                error=str(error),
            ))

        return self.retry_policy.call(func, on_retry=on_retry)
