"""
Sharing Entities

Domain entity for public share links.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..file_storage.entities import new_id
from .value_objects import ExpirationPolicy, ShareToken


class ShareState(Enum):
    """
    Observed state of a share.

    Only ACTIVE is stored implicitly; EXPIRED is observed from the clock
    and REVOKED from the tombstone flag. Both are terminal.
    """

    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


@dataclass
class ShareLink:
    """
    Entity granting anonymous, time-bounded access to one file.

    Revocation is a tombstone (``revoked = True``); share rows are never
    hard deleted so resolution can tell "revoked" from "never existed".
    """

    id: str
    file_id: str
    owner_id: str
    token: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    revoked: bool = False
    policy: str = ExpirationPolicy.NEVER.value

    @classmethod
    def create(
        cls,
        file_id: str,
        owner_id: str,
        policy: ExpirationPolicy,
        now: datetime,
        token: Optional[ShareToken] = None,
    ) -> "ShareLink":
        """
        Factory method to create a new active share.

        Args:
            file_id: Shared file
            owner_id: Owner of the file
            policy: Lifetime option; expiration is computed from ``now``
            now: Creation time
            token: Token to use, generated when omitted

        Returns:
            New ShareLink instance
        """
        token = token or ShareToken.generate()
        return cls(
            id=new_id(),
            file_id=file_id,
            owner_id=owner_id,
            token=token.value,
            created_at=now,
            expires_at=policy.expires_at(now),
            revoked=False,
            policy=policy.value,
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def state(self, now: datetime) -> ShareState:
        if self.revoked:
            return ShareState.REVOKED
        if self.is_expired(now):
            return ShareState.EXPIRED
        return ShareState.ACTIVE

    def is_valid(self, now: datetime) -> bool:
        return self.state(now) is ShareState.ACTIVE

    def to_dict(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Convert to dictionary for serialization; includes state when ``now`` is given."""
        data = {
            "id": self.id,
            "file_id": self.file_id,
            "owner_id": self.owner_id,
            "token": self.token,
            "policy": self.policy,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "revoked": self.revoked,
        }
        if now is not None:
            data["state"] = self.state(now).value
        return data
