"""
Mock Repository Implementations

In-memory implementations of the catalog, folder, binding, share and rate
limit repositories for unit testing. Each keeps a call history for
interaction assertions. Writes that touch the usage ledger run under one
lock, which stands in for the ledger row lock of the SQL catalog.
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from cloudvault.domain.errors import DuplicateShareTokenError, FileNotFoundError, MetadataWriteFailedError
from cloudvault.domain.file_storage.entities import BucketBinding, FileRecord, Folder
from cloudvault.domain.file_storage.repositories import (
    BucketBindingRepository,
    FileCatalog,
    FolderRepository,
)
from cloudvault.domain.file_storage.value_objects import FileFilter
from cloudvault.domain.rate_limiting.entities import RateLimitEntity
from cloudvault.domain.rate_limiting.repositories import IRateLimitRepository
from cloudvault.domain.rate_limiting.value_objects import ClientIP, RateLimit
from cloudvault.domain.sharing.entities import ShareLink
from cloudvault.domain.sharing.repositories import ShareLinkRepository


class MockFileCatalog(FileCatalog):
    """
    In-memory FileCatalog.

    Returned records are copies, like rows loaded by a fresh session, so
    callers cannot change stored state by mutating them.
    """

    def __init__(self):
        self._files: Dict[str, FileRecord] = {}
        self._usage: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._call_history: List[Dict[str, Any]] = []
        self.fail_writes = False

    def _record(self, method: str, **args) -> None:
        self._call_history.append({"method": method, "args": args})

    def _sum(self, owner_id: str) -> int:
        return sum(f.size_bytes for f in self._files.values() if f.owner_id == owner_id)

    def commit_upload(self, record: FileRecord) -> Tuple[FileRecord, bool]:
        self._record("commit_upload", object_key=record.object_key)
        with self._lock:
            if self.fail_writes:
                raise MetadataWriteFailedError(f"Injected failure for {record.object_key}")
            for existing in self._files.values():
                if existing.object_key == record.object_key:
                    return replace(existing), False
            self._files[record.id] = replace(record)
            self._usage[record.owner_id] = self._usage.get(record.owner_id, 0) + record.size_bytes
            return replace(record), True

    def remove_file(self, owner_id: str, file_id: str) -> Optional[int]:
        self._record("remove_file", owner_id=owner_id, file_id=file_id)
        with self._lock:
            if self.fail_writes:
                raise MetadataWriteFailedError(f"Injected failure for {file_id}")
            record = self._files.get(file_id)
            if record is None or record.owner_id != owner_id:
                return None
            del self._files[file_id]
            total = self._sum(owner_id)
            self._usage[owner_id] = total
            return total

    def reconcile_usage(self, owner_id: str) -> Tuple[int, int]:
        self._record("reconcile_usage", owner_id=owner_id)
        with self._lock:
            if self.fail_writes:
                raise MetadataWriteFailedError(f"Injected failure for {owner_id}")
            previous = self._usage.get(owner_id, 0)
            recomputed = self._sum(owner_id)
            self._usage[owner_id] = recomputed
            return previous, recomputed

    def get_usage(self, owner_id: str) -> int:
        return self._usage.get(owner_id, 0)

    def sum_sizes(self, owner_id: str) -> int:
        return self._sum(owner_id)

    def update_file(self, record: FileRecord) -> FileRecord:
        self._record("update_file", file_id=record.id)
        stored = self._files.get(record.id)
        if stored is None or stored.owner_id != record.owner_id:
            raise FileNotFoundError(f"File not found: {record.id}")
        stored.name = record.name
        stored.folder_id = record.folder_id
        return replace(stored)

    def get_file(self, file_id: str) -> Optional[FileRecord]:
        record = self._files.get(file_id)
        return replace(record) if record else None

    def get_file_by_key(self, object_key: str) -> Optional[FileRecord]:
        for record in self._files.values():
            if record.object_key == object_key:
                return replace(record)
        return None

    def list_files(self, owner_id: str, file_filter: FileFilter) -> List[FileRecord]:
        files = [f for f in self._files.values() if f.owner_id == owner_id]
        if file_filter.search:
            files = [f for f in files if file_filter.search.lower() in f.name.lower()]
        if file_filter.content_type:
            files = [f for f in files if f.content_type == file_filter.content_type]
        if file_filter.root_only:
            files = [f for f in files if f.folder_id is None]
        elif file_filter.folder_id:
            files = [f for f in files if f.folder_id == file_filter.folder_id]
        field = file_filter.sort_by.value
        files.sort(key=lambda f: (getattr(f, field), f.id), reverse=file_filter.descending)
        return [replace(f) for f in files]

    def list_content_types(self, owner_id: str) -> List[str]:
        return sorted({f.content_type for f in self._files.values() if f.owner_id == owner_id})

    def list_object_keys(self, owner_id: str) -> List[str]:
        return [f.object_key for f in self._files.values() if f.owner_id == owner_id]

    def list_owner_ids(self) -> List[str]:
        return sorted(set(self._usage) | {f.owner_id for f in self._files.values()})

    # Test helpers

    def set_usage(self, owner_id: str, total: int) -> None:
        """Force the ledger out of step with the records (simulated drift)."""
        self._usage[owner_id] = total

    def get_calls(self, method: Optional[str] = None) -> List[Dict[str, Any]]:
        if method is None:
            return list(self._call_history)
        return [c for c in self._call_history if c["method"] == method]


class MockFolderRepository(FolderRepository):
    """In-memory FolderRepository that detaches files through the catalog."""

    def __init__(self, catalog: Optional[MockFileCatalog] = None):
        self._folders: Dict[str, Folder] = {}
        self._catalog = catalog

    def get(self, folder_id: str) -> Optional[Folder]:
        folder = self._folders.get(folder_id)
        return replace(folder) if folder else None

    def list_for_owner(self, owner_id: str) -> List[Folder]:
        folders = [f for f in self._folders.values() if f.owner_id == owner_id]
        return [replace(f) for f in sorted(folders, key=lambda f: (f.name, f.id))]

    def save(self, folder: Folder) -> Folder:
        self._folders[folder.id] = replace(folder)
        return folder

    def delete_and_detach(self, owner_id: str, folder_id: str) -> bool:
        folder = self._folders.get(folder_id)
        if folder is None or folder.owner_id != owner_id:
            return False
        if self._catalog is not None:
            for record in self._catalog._files.values():
                if record.owner_id == owner_id and record.folder_id == folder_id:
                    record.folder_id = None
        for child in self._folders.values():
            if child.parent_id == folder_id:
                child.parent_id = None
        del self._folders[folder_id]
        return True


class MockBucketBindingRepository(BucketBindingRepository):
    """In-memory BucketBindingRepository."""

    def __init__(self):
        self._bindings: Dict[str, BucketBinding] = {}
        self._lock = threading.Lock()

    def get(self, owner_id: str) -> Optional[BucketBinding]:
        return self._bindings.get(owner_id)

    def create_if_absent(self, binding: BucketBinding) -> BucketBinding:
        with self._lock:
            return self._bindings.setdefault(binding.owner_id, binding)

    def list_all(self) -> List[BucketBinding]:
        return [self._bindings[k] for k in sorted(self._bindings)]


class MockShareLinkRepository(ShareLinkRepository):
    """In-memory ShareLinkRepository with a unique token index."""

    def __init__(self):
        self._shares: Dict[str, ShareLink] = {}
        self._call_history: List[Dict[str, Any]] = []

    def add(self, share: ShareLink) -> ShareLink:
        self._call_history.append({"method": "add", "args": {"token": share.token}})
        if any(s.token == share.token for s in self._shares.values()):
            raise DuplicateShareTokenError("Share token already in use")
        self._shares[share.id] = replace(share)
        return share

    def get(self, share_id: str) -> Optional[ShareLink]:
        share = self._shares.get(share_id)
        return replace(share) if share else None

    def get_by_token(self, token: str) -> Optional[ShareLink]:
        for share in self._shares.values():
            if share.token == token:
                return replace(share)
        return None

    def update_expiration(
        self, share_id: str, expires_at: Optional[datetime], policy: str
    ) -> bool:
        share = self._shares.get(share_id)
        if share is None or share.revoked:
            return False
        share.expires_at = expires_at
        share.policy = policy
        return True

    def mark_revoked(self, share_id: str) -> None:
        self._call_history.append({"method": "mark_revoked", "args": {"share_id": share_id}})
        self._shares[share_id].revoked = True

    def list_for_owner(self, owner_id: str) -> List[ShareLink]:
        shares = [s for s in self._shares.values() if s.owner_id == owner_id]
        shares.sort(key=lambda s: (s.created_at, s.id), reverse=True)
        return [replace(s) for s in shares]


class MockRateLimitRepository(IRateLimitRepository):
    """In-memory fixed-window counters keyed by IP hash, limit type and window end."""

    def __init__(self, clock):
        self.clock = clock
        self._counters: Dict[Tuple[str, str, datetime], int] = {}

    def _key(self, client_ip: ClientIP, rate_limit: RateLimit):
        return (client_ip.hash_for_key(), rate_limit.limit_type, rate_limit.reset_at(self.clock()))

    def _entity(self, client_ip: ClientIP, rate_limit: RateLimit, count: int) -> RateLimitEntity:
        return RateLimitEntity(
            client_ip=client_ip,
            limit_type=rate_limit.limit_type,
            current_count=count,
            limit=rate_limit.limit,
            reset_at=rate_limit.reset_at(self.clock()),
        )

    def get_limit_state(self, client_ip: ClientIP, rate_limit: RateLimit) -> RateLimitEntity:
        return self._entity(client_ip, rate_limit, self._counters.get(self._key(client_ip, rate_limit), 0))

    def increment(self, client_ip: ClientIP, rate_limit: RateLimit) -> RateLimitEntity:
        key = self._key(client_ip, rate_limit)
        self._counters[key] = self._counters.get(key, 0) + 1
        return self._entity(client_ip, rate_limit, self._counters[key])

    def reset_counter(self, client_ip: ClientIP, limit_type: str) -> bool:
        keys = [k for k in self._counters if k[0] == client_ip.hash_for_key() and k[1] == limit_type]
        for key in keys:
            del self._counters[key]
        return bool(keys)
