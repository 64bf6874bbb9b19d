"""
Share Application Service

Coordinates share management for owners and anonymous share resolution.
"""

import logging
from typing import Any, Dict

from ..domain.clock import Clock, utcnow
from ..domain.file_storage import TransferCoordinator
from ..domain.sharing import ShareLink, ShareLinkIssuer
from .service_result import ServiceResult, run_service_call

logger = logging.getLogger(__name__)


class ShareService:
    """
    Application service for share links.

    Resolution combines validate_share with a fresh download capability for
    the shared file, so the caller never learns the object's location
    beyond one short-lived URL.
    """

    def __init__(
        self,
        issuer: ShareLinkIssuer,
        coordinator: TransferCoordinator,
        clock: Clock = utcnow,
    ):
        self.issuer = issuer
        self.coordinator = coordinator
        self.clock = clock

    def _share_dict(self, share: ShareLink) -> Dict[str, Any]:
        return share.to_dict(now=self.clock())

    def create_share(self, owner_id: str, file_id: str, expiration_policy: Any) -> ServiceResult:
        def run() -> Dict[str, Any]:
            share = self.issuer.create_share(file_id, owner_id, expiration_policy)
            return self._share_dict(share)

        return run_service_call(logger, "create_share", run, status_code=201)

    def list_shares(self, owner_id: str) -> ServiceResult:
        def run() -> Dict[str, Any]:
            shares = self.issuer.list_shares(owner_id)
            return {"shares": [self._share_dict(share) for share in shares]}

        return run_service_call(logger, "list_shares", run)

    def extend_share(self, owner_id: str, share_id: str, expiration_policy: Any) -> ServiceResult:
        def run() -> Dict[str, Any]:
            share = self.issuer.extend_expiration(owner_id, share_id, expiration_policy)
            return self._share_dict(share)

        return run_service_call(logger, "extend_share", run)

    def revoke_share(self, owner_id: str, share_id: str) -> ServiceResult:
        def run() -> Dict[str, Any]:
            return self._share_dict(self.issuer.revoke(owner_id, share_id))

        return run_service_call(logger, "revoke_share", run)

    def resolve_share(self, token: str) -> ServiceResult:
        """
        Resolve a public token to file details and a download capability.

        Returns:
            ServiceResult whose payload holds file name, size, content type,
            share expiry and the download handle
        """
        def run() -> Dict[str, Any]:
            share, record = self.issuer.resolve(token)
            ticket = self.coordinator.issue_download(record)
            return {
                "file": {
                    "name": record.name,
                    "size_bytes": record.size_bytes,
                    "content_type": record.content_type,
                },
                "share_expires_at": share.expires_at.isoformat() if share.expires_at else None,
                **ticket.to_dict(),
            }

        return run_service_call(logger, "resolve_share", run)
