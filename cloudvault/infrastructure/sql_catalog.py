"""
SQL Metadata Catalog

SQLAlchemy implementations of the file catalog, folder and namespace
binding repositories.

Concurrency: every write that changes an owner's usage first takes that
owner's ledger row lock (SELECT ... FOR UPDATE on server databases,
BEGIN IMMEDIATE on SQLite) and performs all of its reads and writes inside
the same transaction. The ledger is never updated from a value read in an
earlier transaction.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, distinct, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..domain.clock import Clock, utcnow
from ..domain.errors import FileNotFoundError, FolderNotFoundError, MetadataWriteFailedError
from ..domain.file_storage.entities import BucketBinding, FileRecord, Folder
from ..domain.file_storage.repositories import (
    BucketBindingRepository,
    FileCatalog,
    FolderRepository,
)
from ..domain.file_storage.value_objects import FileFilter, SortField
from .database import write_transaction
from .sql_models import BucketBindingRow, FileRow, FolderRow, StorageUsageRow

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    SortField.NAME: FileRow.name,
    SortField.CREATED_AT: FileRow.created_at,
    SortField.SIZE_BYTES: FileRow.size_bytes,
    SortField.CONTENT_TYPE: FileRow.content_type,
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _lock_folder(session: Session, owner_id: str, folder_id: str) -> bool:
    """Lock the owner's folder row; False if it no longer exists."""
    row = session.execute(
        select(FolderRow.id)
        .where(FolderRow.id == folder_id, FolderRow.owner_id == owner_id)
        .with_for_update()
    ).scalar_one_or_none()
    return row is not None


class SqlFileCatalog(FileCatalog):
    """File records and the usage ledger in a relational database."""

    def __init__(self, session_factory: sessionmaker, clock: Clock = utcnow):
        self._session_factory = session_factory
        self.clock = clock

    # Ledger locking

    def _lock_usage(self, session: Session, owner_id: str) -> int:
        """
        Create the owner's ledger row if needed and lock it.

        Returns:
            The ledger total as seen under the lock
        """
        values = {"owner_id": owner_id, "total_bytes": 0, "updated_at": self.clock()}
        dialect = session.get_bind().dialect.name

        if dialect == "sqlite":
            session.execute(
                sqlite_insert(StorageUsageRow).values(**values)
                .on_conflict_do_nothing(index_elements=["owner_id"])
            )
        elif dialect == "postgresql":
            session.execute(
                pg_insert(StorageUsageRow).values(**values)
                .on_conflict_do_nothing(index_elements=["owner_id"])
            )
        else:
            try:
                with session.begin_nested():
                    session.add(StorageUsageRow(**values))
            except IntegrityError:
                pass

        return session.execute(
            select(StorageUsageRow.total_bytes)
            .where(StorageUsageRow.owner_id == owner_id)
            .with_for_update()
        ).scalar_one()

    def _sum(self, session: Session, owner_id: str) -> int:
        total = session.execute(
            select(func.coalesce(func.sum(FileRow.size_bytes), 0))
            .where(FileRow.owner_id == owner_id)
        ).scalar_one()
        return int(total)

    def _write_total(self, session: Session, owner_id: str, total: int) -> None:
        session.execute(
            update(StorageUsageRow)
            .where(StorageUsageRow.owner_id == owner_id)
            .values(total_bytes=total, updated_at=self.clock())
        )

    # Writes

    def commit_upload(self, record: FileRecord) -> Tuple[FileRecord, bool]:
        try:
            with write_transaction(self._session_factory) as session:
                self._lock_usage(session, record.owner_id)
                existing = session.execute(
                    select(FileRow).where(FileRow.object_key == record.object_key)
                ).scalar_one_or_none()
                if existing is not None:
                    return existing.to_entity(), False

                if record.folder_id is not None and not _lock_folder(
                    session, record.owner_id, record.folder_id
                ):
                    # Folder deleted since the caller checked; its files live at the root now
                    logger.info(f"Folder {record.folder_id} vanished; storing {record.object_key} at the root")
                    record.folder_id = None
                session.add(FileRow.from_entity(record))
                # Server-side increment; never a value computed in Python
                session.execute(
                    update(StorageUsageRow)
                    .where(StorageUsageRow.owner_id == record.owner_id)
                    .values(
                        total_bytes=StorageUsageRow.total_bytes + record.size_bytes,
                        updated_at=self.clock(),
                    )
                )
            return record, True
        except IntegrityError as e:
            existing = self.get_file_by_key(record.object_key)
            if existing is not None:
                return existing, False
            raise MetadataWriteFailedError(
                f"Could not commit file record for {record.object_key}: {e}", original_error=e
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Catalog write failed for {record.object_key}: {e}")
            raise MetadataWriteFailedError(
                f"Could not commit file record for {record.object_key}: {e}", original_error=e
            ) from e

    def remove_file(self, owner_id: str, file_id: str) -> Optional[int]:
        try:
            with write_transaction(self._session_factory) as session:
                self._lock_usage(session, owner_id)
                row = session.get(FileRow, file_id)
                if row is None or row.owner_id != owner_id:
                    return None
                session.delete(row)
                session.flush()
                total = self._sum(session, owner_id)
                self._write_total(session, owner_id, total)
                return total
        except SQLAlchemyError as e:
            logger.error(f"Catalog delete failed for file {file_id}: {e}")
            raise MetadataWriteFailedError(
                f"Could not remove file record {file_id}: {e}", original_error=e
            ) from e

    def reconcile_usage(self, owner_id: str) -> Tuple[int, int]:
        try:
            with write_transaction(self._session_factory) as session:
                previous = self._lock_usage(session, owner_id)
                recomputed = self._sum(session, owner_id)
                if recomputed != previous:
                    self._write_total(session, owner_id, recomputed)
                return int(previous), recomputed
        except SQLAlchemyError as e:
            raise MetadataWriteFailedError(
                f"Could not reconcile usage for {owner_id}: {e}", original_error=e
            ) from e

    def update_file(self, record: FileRecord) -> FileRecord:
        try:
            with write_transaction(self._session_factory) as session:
                if record.folder_id is not None and not _lock_folder(
                    session, record.owner_id, record.folder_id
                ):
                    raise FolderNotFoundError(f"Folder not found: {record.folder_id}")
                result = session.execute(
                    update(FileRow)
                    .where(FileRow.id == record.id, FileRow.owner_id == record.owner_id)
                    .values(name=record.name, folder_id=record.folder_id)
                )
                if result.rowcount == 0:
                    raise FileNotFoundError(f"File not found: {record.id}")
            return record
        except SQLAlchemyError as e:
            raise MetadataWriteFailedError(
                f"Could not update file record {record.id}: {e}", original_error=e
            ) from e

    # Reads

    def get_file(self, file_id: str) -> Optional[FileRecord]:
        with self._session_factory() as session:
            row = session.get(FileRow, file_id)
            return row.to_entity() if row else None

    def get_file_by_key(self, object_key: str) -> Optional[FileRecord]:
        with self._session_factory() as session:
            row = session.execute(
                select(FileRow).where(FileRow.object_key == object_key)
            ).scalar_one_or_none()
            return row.to_entity() if row else None

    def get_usage(self, owner_id: str) -> int:
        with self._session_factory() as session:
            total = session.execute(
                select(StorageUsageRow.total_bytes).where(StorageUsageRow.owner_id == owner_id)
            ).scalar_one_or_none()
            return int(total or 0)

    def sum_sizes(self, owner_id: str) -> int:
        with self._session_factory() as session:
            return self._sum(session, owner_id)

    def list_files(self, owner_id: str, file_filter: FileFilter) -> List[FileRecord]:
        query = select(FileRow).where(FileRow.owner_id == owner_id)

        if file_filter.search:
            pattern = f"%{_escape_like(file_filter.search.lower())}%"
            query = query.where(func.lower(FileRow.name).like(pattern, escape="\\"))
        if file_filter.content_type:
            query = query.where(FileRow.content_type == file_filter.content_type)
        if file_filter.root_only:
            query = query.where(FileRow.folder_id.is_(None))
        elif file_filter.folder_id:
            query = query.where(FileRow.folder_id == file_filter.folder_id)

        column = _SORT_COLUMNS[file_filter.sort_by]
        if file_filter.descending:
            query = query.order_by(column.desc(), FileRow.id.desc())
        else:
            query = query.order_by(column.asc(), FileRow.id.asc())

        with self._session_factory() as session:
            return [row.to_entity() for row in session.execute(query).scalars()]

    def list_content_types(self, owner_id: str) -> List[str]:
        with self._session_factory() as session:
            rows = session.execute(
                select(distinct(FileRow.content_type))
                .where(FileRow.owner_id == owner_id)
                .order_by(FileRow.content_type)
            ).scalars()
            return list(rows)

    def list_object_keys(self, owner_id: str) -> List[str]:
        with self._session_factory() as session:
            return list(session.execute(
                select(FileRow.object_key).where(FileRow.owner_id == owner_id)
            ).scalars())

    def list_owner_ids(self) -> List[str]:
        with self._session_factory() as session:
            ledger_owners = set(session.execute(select(StorageUsageRow.owner_id)).scalars())
            file_owners = set(session.execute(select(distinct(FileRow.owner_id))).scalars())
            return sorted(ledger_owners | file_owners)


class SqlFolderRepository(FolderRepository):
    """Folders in a relational database."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, folder_id: str) -> Optional[Folder]:
        with self._session_factory() as session:
            row = session.get(FolderRow, folder_id)
            return row.to_entity() if row else None

    def list_for_owner(self, owner_id: str) -> List[Folder]:
        with self._session_factory() as session:
            rows = session.execute(
                select(FolderRow)
                .where(FolderRow.owner_id == owner_id)
                .order_by(FolderRow.name, FolderRow.id)
            ).scalars()
            return [row.to_entity() for row in rows]

    def save(self, folder: Folder) -> Folder:
        try:
            with write_transaction(self._session_factory) as session:
                row = session.get(FolderRow, folder.id)
                if row is None:
                    row = FolderRow(id=folder.id)
                    session.add(row)
                row.apply(folder)
            return folder
        except SQLAlchemyError as e:
            raise MetadataWriteFailedError(
                f"Could not save folder {folder.id}: {e}", original_error=e
            ) from e

    def delete_and_detach(self, owner_id: str, folder_id: str) -> bool:
        try:
            with write_transaction(self._session_factory) as session:
                if not _lock_folder(session, owner_id, folder_id):
                    return False
                session.execute(
                    update(FileRow)
                    .where(FileRow.owner_id == owner_id, FileRow.folder_id == folder_id)
                    .values(folder_id=None)
                )
                session.execute(
                    update(FolderRow)
                    .where(FolderRow.owner_id == owner_id, FolderRow.parent_id == folder_id)
                    .values(parent_id=None)
                )
                session.execute(delete(FolderRow).where(FolderRow.id == folder_id))
                return True
        except SQLAlchemyError as e:
            raise MetadataWriteFailedError(
                f"Could not delete folder {folder_id}: {e}", original_error=e
            ) from e


class SqlBucketBindingRepository(BucketBindingRepository):
    """Owner to namespace bindings in a relational database."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, owner_id: str) -> Optional[BucketBinding]:
        with self._session_factory() as session:
            row = session.get(BucketBindingRow, owner_id)
            return row.to_entity() if row else None

    def create_if_absent(self, binding: BucketBinding) -> BucketBinding:
        try:
            with write_transaction(self._session_factory) as session:
                row = session.get(BucketBindingRow, binding.owner_id)
                if row is not None:
                    return row.to_entity()
                session.add(BucketBindingRow(
                    owner_id=binding.owner_id,
                    namespace=binding.namespace,
                    created_at=binding.created_at,
                ))
            return binding
        except IntegrityError as e:
            existing = self.get(binding.owner_id)
            if existing is not None:
                return existing
            raise MetadataWriteFailedError(
                f"Could not bind namespace {binding.namespace}: {e}", original_error=e
            ) from e
        except SQLAlchemyError as e:
            raise MetadataWriteFailedError(
                f"Could not bind namespace {binding.namespace}: {e}", original_error=e
            ) from e

    def list_all(self) -> List[BucketBinding]:
        with self._session_factory() as session:
            rows = session.execute(select(BucketBindingRow).order_by(BucketBindingRow.owner_id))
            return [row.to_entity() for row in rows.scalars()]
