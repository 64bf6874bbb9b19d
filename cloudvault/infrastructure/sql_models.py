"""
Catalog Table Models

SQLAlchemy mapped classes for the metadata catalog. Conversion to and from
domain entities lives here so repositories only deal with domain types.
"""

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, String

from ..domain.file_storage.entities import BucketBinding, FileRecord, Folder
from ..domain.sharing.entities import ShareLink
from .database import Base


class FileRow(Base):
    __tablename__ = "files"

    id = Column(String(32), primary_key=True)
    owner_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    size_bytes = Column(BigInteger, nullable=False)
    content_type = Column(String(255), nullable=False)
    object_key = Column(String(512), nullable=False, unique=True)
    folder_id = Column(String(32), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False)

    def to_entity(self) -> FileRecord:
        return FileRecord(
            id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            size_bytes=int(self.size_bytes),
            content_type=self.content_type,
            object_key=self.object_key,
            created_at=self.created_at,
            folder_id=self.folder_id,
        )

    @classmethod
    def from_entity(cls, record: FileRecord) -> "FileRow":
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            name=record.name,
            size_bytes=record.size_bytes,
            content_type=record.content_type,
            object_key=record.object_key,
            folder_id=record.folder_id,
            created_at=record.created_at,
        )


class StorageUsageRow(Base):
    """Quota ledger; one row per owner, locked by every usage-changing write."""

    __tablename__ = "storage_usage"

    owner_id = Column(String(255), primary_key=True)
    total_bytes = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False)


class BucketBindingRow(Base):
    __tablename__ = "bucket_bindings"

    owner_id = Column(String(255), primary_key=True)
    namespace = Column(String(63), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False)

    def to_entity(self) -> BucketBinding:
        return BucketBinding(
            owner_id=self.owner_id, namespace=self.namespace, created_at=self.created_at
        )


class FolderRow(Base):
    __tablename__ = "folders"

    id = Column(String(32), primary_key=True)
    owner_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    parent_id = Column(String(32), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def to_entity(self) -> Folder:
        return Folder(
            id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            created_at=self.created_at,
            updated_at=self.updated_at,
            parent_id=self.parent_id,
        )

    def apply(self, folder: Folder) -> None:
        self.owner_id = folder.owner_id
        self.name = folder.name
        self.parent_id = folder.parent_id
        self.created_at = folder.created_at
        self.updated_at = folder.updated_at


class ShareLinkRow(Base):
    """
    Share links. Rows are never deleted; file_id carries no foreign key so
    a share outlives its file and resolves to "not found" afterwards.
    """

    __tablename__ = "share_links"
    __table_args__ = (Index("ix_share_links_owner_created", "owner_id", "created_at"),)

    id = Column(String(32), primary_key=True)
    file_id = Column(String(32), nullable=False, index=True)
    owner_id = Column(String(255), nullable=False)
    token = Column(String(128), nullable=False, unique=True, index=True)
    policy = Column(String(16), nullable=False)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, nullable=False, default=False)

    def to_entity(self) -> ShareLink:
        return ShareLink(
            id=self.id,
            file_id=self.file_id,
            owner_id=self.owner_id,
            token=self.token,
            created_at=self.created_at,
            expires_at=self.expires_at,
            revoked=bool(self.revoked),
            policy=self.policy,
        )

    @classmethod
    def from_entity(cls, share: ShareLink) -> "ShareLinkRow":
        return cls(
            id=share.id,
            file_id=share.file_id,
            owner_id=share.owner_id,
            token=share.token,
            policy=share.policy,
            expires_at=share.expires_at,
            created_at=share.created_at,
            revoked=share.revoked,
        )
