"""
Sharing Repositories

Repository interface for share link persistence.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from .entities import ShareLink


class ShareLinkRepository(ABC):
    """Abstract repository for share links."""

    @abstractmethod
    def add(self, share: ShareLink) -> ShareLink:
        """
        Insert a new share.

        Raises:
            DuplicateShareTokenError: If the token is already taken
            MetadataWriteFailedError: For any other write failure
        """
        pass  # pragma: no cover

    @abstractmethod
    def get(self, share_id: str) -> Optional[ShareLink]:
        pass  # pragma: no cover

    @abstractmethod
    def get_by_token(self, token: str) -> Optional[ShareLink]:
        pass  # pragma: no cover

    @abstractmethod
    def update_expiration(
        self, share_id: str, expires_at: Optional[datetime], policy: str
    ) -> bool:
        """
        Replace the expiration of a share that is not revoked.

        Returns:
            False if the share was revoked (or missing), nothing is written then
        """
        pass  # pragma: no cover

    @abstractmethod
    def mark_revoked(self, share_id: str) -> None:
        """Set the tombstone flag. Expiration fields are left untouched."""
        pass  # pragma: no cover

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[ShareLink]:
        """Owner's shares, newest first."""
        pass  # pragma: no cover
