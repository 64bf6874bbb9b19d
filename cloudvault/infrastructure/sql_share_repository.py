"""
SQL Share Link Repository

SQLAlchemy implementation of ShareLinkRepository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..domain.errors import DuplicateShareTokenError, MetadataWriteFailedError
from ..domain.sharing.entities import ShareLink
from ..domain.sharing.repositories import ShareLinkRepository
from .database import write_transaction
from .sql_models import ShareLinkRow


class SqlShareLinkRepository(ShareLinkRepository):
    """Share links in a relational database. Rows are never deleted."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def add(self, share: ShareLink) -> ShareLink:
        try:
            with write_transaction(self._session_factory) as session:
                session.add(ShareLinkRow.from_entity(share))
            return share
        except IntegrityError as e:
            raise DuplicateShareTokenError("Share token already in use", original_error=e) from e
        except SQLAlchemyError as e:
            raise MetadataWriteFailedError(
                f"Could not store share {share.id}: {e}", original_error=e
            ) from e

    def get(self, share_id: str) -> Optional[ShareLink]:
        with self._session_factory() as session:
            row = session.get(ShareLinkRow, share_id)
            return row.to_entity() if row else None

    def get_by_token(self, token: str) -> Optional[ShareLink]:
        with self._session_factory() as session:
            row = session.execute(
                select(ShareLinkRow).where(ShareLinkRow.token == token)
            ).scalar_one_or_none()
            return row.to_entity() if row else None

    def update_expiration(
        self, share_id: str, expires_at: Optional[datetime], policy: str
    ) -> bool:
        try:
            with write_transaction(self._session_factory) as session:
                result = session.execute(
                    update(ShareLinkRow)
                    .where(ShareLinkRow.id == share_id, ShareLinkRow.revoked.is_(False))
                    .values(expires_at=expires_at, policy=policy)
                )
                return result.rowcount == 1
        except SQLAlchemyError as e:
            raise MetadataWriteFailedError(
                f"Could not update share {share_id}: {e}", original_error=e
            ) from e

    def mark_revoked(self, share_id: str) -> None:
        try:
            with write_transaction(self._session_factory) as session:
                session.execute(
                    update(ShareLinkRow)
                    .where(ShareLinkRow.id == share_id)
                    .values(revoked=True)
                )
        except SQLAlchemyError as e:
            raise MetadataWriteFailedError(
                f"Could not revoke share {share_id}: {e}", original_error=e
            ) from e

    def list_for_owner(self, owner_id: str) -> List[ShareLink]:
        with self._session_factory() as session:
            rows = session.execute(
                select(ShareLinkRow)
                .where(ShareLinkRow.owner_id == owner_id)
                .order_by(ShareLinkRow.created_at.desc(), ShareLinkRow.id.desc())
            ).scalars()
            return [row.to_entity() for row in rows]
