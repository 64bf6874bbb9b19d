"""
Domain Events

Immutable records of significant state changes in the domain.
Events decouple side effects (logging, metrics) from core business logic.
"""

from abc import ABC
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DomainEvent(ABC):
    """
    Base class for all domain events.

    Attributes:
        aggregate_id: ID of the aggregate that generated the event
            (owner id, file id or share id)
        occurred_at: Timestamp when the event occurred
    """
    aggregate_id: str
    occurred_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event
        """
        return {
            "event_type": self.__class__.__name__,
            "aggregate_id": self.aggregate_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class NamespaceProvisionedEvent(DomainEvent):
    """
    Event emitted when an owner's storage namespace is created and bound.

    Attributes:
        aggregate_id: Owner ID
        namespace: Name of the created namespace
        attempts: Backend attempts it took
    """
    namespace: str
    attempts: int

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({"namespace": self.namespace, "attempts": self.attempts})
        return base_dict


@dataclass(frozen=True)
class BackendRetryEvent(DomainEvent):
    """
    Event emitted before a transient backend failure is retried.

    Attributes:
        aggregate_id: Owner ID the call was made for
        operation: Name of the backend operation
        attempt: Attempt number that failed
        delay_seconds: Wait before the next attempt
        error: Error message of the failure
    """
    operation: str
    attempt: int
    delay_seconds: float
    error: str

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            "operation": self.operation,
            "attempt": self.attempt,
            "delay_seconds": self.delay_seconds,
            "error": self.error,
        })
        return base_dict


@dataclass(frozen=True)
class UploadRequestedEvent(DomainEvent):
    """
    Event emitted when an upload capability is issued.

    Attributes:
        aggregate_id: Owner ID
        object_key: Key the caller may write to
        declared_size: Size the caller declared (not yet trusted)
        expires_at: When the capability stops working
    """
    object_key: str
    declared_size: int
    expires_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            "object_key": self.object_key,
            "declared_size": self.declared_size,
            "expires_at": self.expires_at.isoformat(),
        })
        return base_dict


@dataclass(frozen=True)
class UploadConfirmedEvent(DomainEvent):
    """
    Event emitted when confirm_upload commits (or finds) a file record.

    Attributes:
        aggregate_id: Owner ID
        file_id: ID of the file record
        object_key: Confirmed object key
        size_bytes: Size added to the owner's usage
        created: False when the key had already been committed
    """
    file_id: str
    object_key: str
    size_bytes: int
    created: bool

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            "file_id": self.file_id,
            "object_key": self.object_key,
            "size_bytes": self.size_bytes,
            "created": self.created,
        })
        return base_dict


@dataclass(frozen=True)
class FileDeletedEvent(DomainEvent):
    """
    Event emitted after a file and its object are removed.

    Attributes:
        aggregate_id: Owner ID
        file_id: Deleted file ID
        size_bytes: Size of the deleted file
        total_bytes: Owner's recomputed usage after the delete
    """
    file_id: str
    size_bytes: int
    total_bytes: int

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            "file_id": self.file_id,
            "size_bytes": self.size_bytes,
            "total_bytes": self.total_bytes,
        })
        return base_dict


@dataclass(frozen=True)
class UsageReconciledEvent(DomainEvent):
    """
    Event emitted when a recomputation found the usage ledger had drifted.

    Attributes:
        aggregate_id: Owner ID
        previous_total: Ledger value before reconciliation
        recomputed_total: Sum of the owner's file sizes
    """
    previous_total: int
    recomputed_total: int

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            "previous_total": self.previous_total,
            "recomputed_total": self.recomputed_total,
        })
        return base_dict


@dataclass(frozen=True)
class ShareCreatedEvent(DomainEvent):
    """
    Event emitted when a share link is created.

    Attributes:
        aggregate_id: Share ID
        file_id: Shared file
        owner_id: Owner of the file
        policy: Expiration policy value ("1h", "never", ...)
        expires_at: Computed expiration, None for never
    """
    file_id: str
    owner_id: str
    policy: str
    expires_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            "file_id": self.file_id,
            "owner_id": self.owner_id,
            "policy": self.policy,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        })
        return base_dict


@dataclass(frozen=True)
class ShareExtendedEvent(DomainEvent):
    """
    Event emitted when a share's expiration is replaced.

    Attributes:
        aggregate_id: Share ID
        policy: New expiration policy value
        expires_at: New expiration, None for never
    """
    policy: str
    expires_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            "policy": self.policy,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        })
        return base_dict


@dataclass(frozen=True)
class ShareRevokedEvent(DomainEvent):
    """
    Event emitted when a share is tombstoned.

    Attributes:
        aggregate_id: Share ID
        file_id: Shared file
    """
    file_id: str

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({"file_id": self.file_id})
        return base_dict
