"""
Sharing Services

Domain service that issues, validates, extends and revokes public share
links for single files.
"""

from typing import Callable, List, Optional, Tuple

from ..clock import Clock, utcnow
from ..errors import (
    DuplicateShareTokenError,
    FileNotFoundError,
    ForbiddenError,
    MetadataWriteFailedError,
    ShareExpiredError,
    ShareNotFoundError,
    ShareRevokedError,
)
from ..events import DomainEvent, ShareCreatedEvent, ShareExtendedEvent, ShareRevokedEvent
from ..file_storage.entities import FileRecord
from ..file_storage.repositories import FileCatalog
from .entities import ShareLink, ShareState
from .repositories import ShareLinkRepository
from .value_objects import ExpirationPolicy, InvalidShareTokenError, ShareToken

MAX_TOKEN_ATTEMPTS = 5


def _discard(event: DomainEvent) -> None:
    return None


class ShareLinkIssuer:
    """
    Domain service for share links.

    validate_share is read-only and side-effect free, so it is safe to call
    on every public resolution. Mutations are owner-only.
    """

    def __init__(
        self,
        shares: ShareLinkRepository,
        catalog: FileCatalog,
        clock: Clock = utcnow,
        publish: Optional[Callable[[DomainEvent], None]] = None,
        token_factory: Callable[[], ShareToken] = ShareToken.generate,
    ):
        """
        Initialize ShareLinkIssuer.

        Args:
            shares: Share link repository
            catalog: File catalog used to check file ownership and existence
            clock: Source of the current time
            publish: Sink for domain events
            token_factory: Token generator (injectable for collision tests)
        """
        self.shares = shares
        self.catalog = catalog
        self.clock = clock
        self.publish = publish or _discard
        self.token_factory = token_factory

    def create_share(self, file_id: str, owner_id: str, expiration_policy) -> ShareLink:
        """
        Create a share for one of the owner's files.

        Args:
            file_id: File to share
            owner_id: Caller, must own the file
            expiration_policy: ExpirationPolicy or its string form
                ("1h", "24h", "7d", "30d", "never")

        Returns:
            The new active ShareLink

        Raises:
            InvalidRequestError: For an unknown policy
            FileNotFoundError: If the file does not exist
            ForbiddenError: If the file belongs to someone else
            MetadataWriteFailedError: If no unique token could be stored
        """
        policy = ExpirationPolicy.parse(expiration_policy)
        record = self.catalog.get_file(file_id)
        if record is None:
            raise FileNotFoundError(f"File not found: {file_id}")
        if not record.is_owned_by(owner_id):
            raise ForbiddenError(f"File {file_id} does not belong to the caller")

        last_error: Optional[DuplicateShareTokenError] = None
        for _ in range(MAX_TOKEN_ATTEMPTS):
            share = ShareLink.create(
                file_id=file_id,
                owner_id=owner_id,
                policy=policy,
                now=self.clock(),
                token=self.token_factory(),
            )
            try:
                stored = self.shares.add(share)
            except DuplicateShareTokenError as e:
                last_error = e
                continue

            self.publish(ShareCreatedEvent(
                aggregate_id=stored.id,
                occurred_at=stored.created_at,
                file_id=file_id,
                owner_id=owner_id,
                policy=policy.value,
                expires_at=stored.expires_at,
            ))
            return stored

        raise MetadataWriteFailedError(
            f"Could not generate a unique share token after {MAX_TOKEN_ATTEMPTS} attempts",
            original_error=last_error,
        )

    def resolve(self, token: str) -> Tuple[ShareLink, FileRecord]:
        """
        Validate a token and return the share together with its file.

        Raises:
            ShareNotFoundError: Malformed or unknown token, or the file is gone
            ShareRevokedError: The share was revoked
            ShareExpiredError: The share's expiration has passed
        """
        try:
            ShareToken(token)
        except InvalidShareTokenError:
            raise ShareNotFoundError("Share not found")

        share = self.shares.get_by_token(token)
        if share is None:
            raise ShareNotFoundError("Share not found")

        state = share.state(self.clock())
        if state is ShareState.REVOKED:
            raise ShareRevokedError(f"Share {share.id} was revoked")
        if state is ShareState.EXPIRED:
            raise ShareExpiredError(f"Share {share.id} expired at {share.expires_at.isoformat()}")

        record = self.catalog.get_file(share.file_id)
        if record is None:
            raise ShareNotFoundError(f"File of share {share.id} no longer exists")
        return share, record

    def validate_share(self, token: str) -> FileRecord:
        """Return the shared file for a valid token; see resolve for errors."""
        _, record = self.resolve(token)
        return record

    def extend_expiration(self, owner_id: str, share_id: str, new_policy) -> ShareLink:
        """
        Replace a share's expiration with one computed from now.

        Raises:
            ShareNotFoundError: Unknown share id
            ForbiddenError: The caller does not own the share
            ShareRevokedError: Revoked shares cannot be revived
            ShareExpiredError: Expired shares cannot be revived
        """
        policy = ExpirationPolicy.parse(new_policy)
        share = self._get_owned(owner_id, share_id)

        now = self.clock()
        state = share.state(now)
        if state is ShareState.REVOKED:
            raise ShareRevokedError(f"Share {share_id} was revoked")
        if state is ShareState.EXPIRED:
            raise ShareExpiredError(f"Share {share_id} has already expired")

        expires_at = policy.expires_at(now)
        # Guarded by revoked = false so a concurrent revoke always wins
        if not self.shares.update_expiration(share_id, expires_at, policy.value):
            raise ShareRevokedError(f"Share {share_id} was revoked")

        share.expires_at = expires_at
        share.policy = policy.value
        self.publish(ShareExtendedEvent(
            aggregate_id=share_id,
            occurred_at=now,
            policy=policy.value,
            expires_at=expires_at,
        ))
        return share

    def revoke(self, owner_id: str, share_id: str) -> ShareLink:
        """
        Tombstone a share. Revoking an already revoked share is a no-op.

        Raises:
            ShareNotFoundError: Unknown share id
            ForbiddenError: The caller does not own the share
        """
        share = self._get_owned(owner_id, share_id)
        if share.revoked:
            return share

        self.shares.mark_revoked(share_id)
        share.revoked = True
        self.publish(ShareRevokedEvent(
            aggregate_id=share_id,
            occurred_at=self.clock(),
            file_id=share.file_id,
        ))
        return share

    def list_shares(self, owner_id: str) -> List[ShareLink]:
        return self.shares.list_for_owner(owner_id)

    def _get_owned(self, owner_id: str, share_id: str) -> ShareLink:
        share = self.shares.get(share_id)
        if share is None:
            raise ShareNotFoundError(f"Share not found: {share_id}")
        if share.owner_id != owner_id:
            raise ForbiddenError(f"Share {share_id} does not belong to the caller")
        return share
