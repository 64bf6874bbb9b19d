"""
File Storage Repositories

Repository interfaces for the metadata catalog.

Every method that changes quota-relevant state is a single transaction in
the implementation. Writes that touch an owner's usage ledger serialize on
that owner's ledger row, so concurrent confirms and deletes for the same
owner never compute totals from stale reads. Different owners never block
each other.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from .entities import BucketBinding, FileRecord, Folder
from .value_objects import FileFilter


class FileCatalog(ABC):
    """Abstract repository for file records and the per-owner usage ledger."""

    @abstractmethod
    def get_file(self, file_id: str) -> Optional[FileRecord]:
        pass  # pragma: no cover

    @abstractmethod
    def get_file_by_key(self, object_key: str) -> Optional[FileRecord]:
        pass  # pragma: no cover

    @abstractmethod
    def commit_upload(self, record: FileRecord) -> Tuple[FileRecord, bool]:
        """
        Insert a file record and add its size to the owner's usage.

        Runs as one transaction holding the owner's ledger lock. If a record
        with the same object key already exists, nothing is written.

        Args:
            record: New record to insert

        Returns:
            (record, created): the stored record and whether it was created
            by this call. When created is False the existing record is
            returned unchanged.

        Raises:
            MetadataWriteFailedError: If the transaction cannot commit
        """
        pass  # pragma: no cover

    @abstractmethod
    def remove_file(self, owner_id: str, file_id: str) -> Optional[int]:
        """
        Delete a file record and recompute the owner's usage.

        Runs as one transaction holding the owner's ledger lock. The new
        total is the sum of the owner's remaining record sizes.

        Returns:
            The recomputed total, or None if the record no longer exists

        Raises:
            MetadataWriteFailedError: If the transaction cannot commit
        """
        pass  # pragma: no cover

    @abstractmethod
    def reconcile_usage(self, owner_id: str) -> Tuple[int, int]:
        """
        Rewrite the owner's usage from the sum of their record sizes.

        Returns:
            (previous_total, recomputed_total)
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_usage(self, owner_id: str) -> int:
        """Current ledger value (0 for owners with no ledger row yet)."""
        pass  # pragma: no cover

    @abstractmethod
    def sum_sizes(self, owner_id: str) -> int:
        """Sum of size_bytes over the owner's records."""
        pass  # pragma: no cover

    @abstractmethod
    def update_file(self, record: FileRecord) -> FileRecord:
        """Persist a changed name or folder. Sizes and keys are never updated."""
        pass  # pragma: no cover

    @abstractmethod
    def list_files(self, owner_id: str, file_filter: FileFilter) -> List[FileRecord]:
        pass  # pragma: no cover

    @abstractmethod
    def list_content_types(self, owner_id: str) -> List[str]:
        """Distinct content types of the owner's files, sorted."""
        pass  # pragma: no cover

    @abstractmethod
    def list_object_keys(self, owner_id: str) -> List[str]:
        pass  # pragma: no cover

    @abstractmethod
    def list_owner_ids(self) -> List[str]:
        """Every owner with a ledger row or at least one file record."""
        pass  # pragma: no cover


class FolderRepository(ABC):
    """Abstract repository for folders."""

    @abstractmethod
    def get(self, folder_id: str) -> Optional[Folder]:
        pass  # pragma: no cover

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[Folder]:
        pass  # pragma: no cover

    @abstractmethod
    def save(self, folder: Folder) -> Folder:
        """Insert or update a folder."""
        pass  # pragma: no cover

    @abstractmethod
    def delete_and_detach(self, owner_id: str, folder_id: str) -> bool:
        """
        Delete a folder in one transaction.

        Files inside move to the root and child folders are re-parented to
        the root.

        Returns:
            True if the folder existed and was deleted
        """
        pass  # pragma: no cover


class BucketBindingRepository(ABC):
    """Abstract repository for owner to namespace bindings."""

    @abstractmethod
    def get(self, owner_id: str) -> Optional[BucketBinding]:
        pass  # pragma: no cover

    @abstractmethod
    def create_if_absent(self, binding: BucketBinding) -> BucketBinding:
        """
        Persist a binding unless the owner already has one.

        Returns:
            The stored binding (the existing one when another writer won)
        """
        pass  # pragma: no cover

    @abstractmethod
    def list_all(self) -> List[BucketBinding]:
        pass  # pragma: no cover
