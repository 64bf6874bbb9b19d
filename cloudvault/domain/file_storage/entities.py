"""
File Storage Entities

Domain entities for stored files, folders, usage ledgers and namespace
bindings.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..errors import InvalidRequestError


def new_id() -> str:
    return uuid.uuid4().hex


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class FileRecord:
    """
    Entity representing a confirmed file.

    A record only exists once its backing object was seen in the blob
    store. ``object_key`` never changes after creation; renames touch
    ``name`` only.
    """

    id: str
    owner_id: str
    name: str
    size_bytes: int
    content_type: str
    object_key: str
    created_at: datetime
    folder_id: Optional[str] = None

    def __post_init__(self):
        if self.size_bytes < 0:
            raise InvalidRequestError(f"size_bytes must be >= 0, got {self.size_bytes}")

    @classmethod
    def create(
        cls,
        owner_id: str,
        name: str,
        size_bytes: int,
        content_type: str,
        object_key: str,
        now: datetime,
        folder_id: Optional[str] = None,
    ) -> "FileRecord":
        """
        Factory method to create a new file record.

        Args:
            owner_id: Owner of the file
            name: Display name
            size_bytes: Confirmed size
            content_type: MIME type
            object_key: Key of the backing object
            now: Creation time
            folder_id: Optional containing folder

        Returns:
            New FileRecord instance
        """
        return cls(
            id=new_id(),
            owner_id=owner_id,
            name=name,
            size_bytes=size_bytes,
            content_type=content_type,
            object_key=object_key,
            created_at=now,
            folder_id=folder_id,
        )

    def is_owned_by(self, owner_id: str) -> bool:
        return self.owner_id == owner_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "size_bytes": self.size_bytes,
            "content_type": self.content_type,
            "object_key": self.object_key,
            "folder_id": self.folder_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        """Create FileRecord from dictionary."""
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            name=data["name"],
            size_bytes=int(data["size_bytes"]),
            content_type=data["content_type"],
            object_key=data["object_key"],
            created_at=datetime.fromisoformat(data["created_at"]),
            folder_id=data.get("folder_id"),
        )


@dataclass
class StorageUsage:
    """
    Per-owner quota ledger.

    At any quiescent point ``total_bytes`` equals the sum of the owner's
    file sizes.
    """

    owner_id: str
    total_bytes: int
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "total_bytes": self.total_bytes,
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class BucketBinding:
    """Binding between an owner and their provisioned namespace."""

    owner_id: str
    namespace: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "namespace": self.namespace,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Folder:
    """
    Folder holding files by flat reference.

    ``parent_id`` is a plain reference; no tree semantics are enforced
    beyond re-parenting children to the root when a folder is deleted.
    """

    id: str
    owner_id: str
    name: str
    created_at: datetime
    updated_at: datetime
    parent_id: Optional[str] = None

    @classmethod
    def create(
        cls, owner_id: str, name: str, now: datetime, parent_id: Optional[str] = None
    ) -> "Folder":
        return cls(
            id=new_id(),
            owner_id=owner_id,
            name=name,
            created_at=now,
            updated_at=now,
            parent_id=parent_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "parent_id": self.parent_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
