"""
File Storage Domain

Handles namespaces, transfer capabilities, file records and the per-owner
quota ledger.
"""

from .blob_store import IBlobStore, StoredObject
from .entities import BucketBinding, FileRecord, Folder, StorageUsage
from .organizer import FileOrganizer
from .provisioning import BucketProvisioner
from .repositories import BucketBindingRepository, FileCatalog, FolderRepository
from .services import TransferCoordinator
from .value_objects import (
    DownloadTicket,
    FileFilter,
    ObjectKey,
    QuotaPolicy,
    QuotaPolicyResolver,
    SortField,
    StorageTier,
    TransferHandle,
    UploadTicket,
    namespace_for,
    sanitize_file_name,
)

__all__ = [
    "BucketBinding",
    "BucketBindingRepository",
    "BucketProvisioner",
    "DownloadTicket",
    "FileCatalog",
    "FileFilter",
    "FileOrganizer",
    "FileRecord",
    "Folder",
    "FolderRepository",
    "IBlobStore",
    "ObjectKey",
    "QuotaPolicy",
    "QuotaPolicyResolver",
    "SortField",
    "StorageTier",
    "StorageUsage",
    "StoredObject",
    "TransferCoordinator",
    "TransferHandle",
    "UploadTicket",
    "namespace_for",
    "sanitize_file_name",
]
