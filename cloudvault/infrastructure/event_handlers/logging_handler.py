"""
Logging Event Handler

Infrastructure event handler that writes domain events to the log.
The domain layer remains unaware of logging infrastructure.
"""

import logging

from ...domain.events import (
    BackendRetryEvent,
    DomainEvent,
    FileDeletedEvent,
    NamespaceProvisionedEvent,
    ShareCreatedEvent,
    ShareExtendedEvent,
    ShareRevokedEvent,
    UploadConfirmedEvent,
    UploadRequestedEvent,
    UsageReconciledEvent,
)


class LoggingEventHandler:
    """
    Infrastructure event handler for logging domain events.
    """

    def __init__(self, logger: logging.Logger):
        """
        Initialize with logger instance.

        Args:
            logger: Python logging.Logger instance
        """
        self.logger = logger

    def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event by logging it.

        Args:
            event: Domain event to log
        """
        try:
            if isinstance(event, NamespaceProvisionedEvent):
                self._handle_namespace_provisioned(event)
            elif isinstance(event, BackendRetryEvent):
                self._handle_backend_retry(event)
            elif isinstance(event, UploadRequestedEvent):
                self._handle_upload_requested(event)
            elif isinstance(event, UploadConfirmedEvent):
                self._handle_upload_confirmed(event)
            elif isinstance(event, FileDeletedEvent):
                self._handle_file_deleted(event)
            elif isinstance(event, UsageReconciledEvent):
                self._handle_usage_reconciled(event)
            elif isinstance(event, ShareCreatedEvent):
                self._handle_share_created(event)
            elif isinstance(event, ShareExtendedEvent):
                self._handle_share_extended(event)
            elif isinstance(event, ShareRevokedEvent):
                self._handle_share_revoked(event)
            else:
                self.logger.debug(
                    f"Unhandled event: {event.__class__.__name__} "
                    f"(aggregate_id={event.aggregate_id})"
                )
        except Exception as e:
            # Log handler errors but don't fail the operation
            self.logger.error(
                f"Error in logging event handler for {event.__class__.__name__}: {e}",
                exc_info=True,
            )

    def _handle_namespace_provisioned(self, event: NamespaceProvisionedEvent) -> None:
        self.logger.info(
            f"Namespace provisioned: owner_id={event.aggregate_id}, "
            f"namespace={event.namespace}, attempts={event.attempts}"
        )

    def _handle_backend_retry(self, event: BackendRetryEvent) -> None:
        self.logger.warning(
            f"Retrying storage backend call: owner_id={event.aggregate_id}, "
            f"operation={event.operation}, attempt={event.attempt}, "
            f"delay={event.delay_seconds:.2f}s, error={event.error}"
        )

    def _handle_upload_requested(self, event: UploadRequestedEvent) -> None:
        self.logger.info(
            f"Upload requested: owner_id={event.aggregate_id}, "
            f"object_key={event.object_key}, declared_size={event.declared_size}"
        )

    def _handle_upload_confirmed(self, event: UploadConfirmedEvent) -> None:
        if not event.created:
            self.logger.debug(
                f"Upload already confirmed: owner_id={event.aggregate_id}, "
                f"file_id={event.file_id}"
            )
            return
        self.logger.info(
            f"Upload confirmed: owner_id={event.aggregate_id}, file_id={event.file_id}, "
            f"size={event.size_bytes} bytes"
        )

    def _handle_file_deleted(self, event: FileDeletedEvent) -> None:
        self.logger.info(
            f"File deleted: owner_id={event.aggregate_id}, file_id={event.file_id}, "
            f"freed={event.size_bytes} bytes, usage={event.total_bytes} bytes"
        )

    def _handle_usage_reconciled(self, event: UsageReconciledEvent) -> None:
        self.logger.warning(
            f"Storage usage corrected: owner_id={event.aggregate_id}, "
            f"{event.previous_total} -> {event.recomputed_total} bytes"
        )

    def _handle_share_created(self, event: ShareCreatedEvent) -> None:
        self.logger.info(
            f"Share created: share_id={event.aggregate_id}, file_id={event.file_id}, "
            f"policy={event.policy}"
        )

    def _handle_share_extended(self, event: ShareExtendedEvent) -> None:
        expires = event.expires_at.isoformat() if event.expires_at else "never"
        self.logger.info(
            f"Share extended: share_id={event.aggregate_id}, policy={event.policy}, "
            f"expires_at={expires}"
        )

    def _handle_share_revoked(self, event: ShareRevokedEvent) -> None:
        self.logger.info(
            f"Share revoked: share_id={event.aggregate_id}, file_id={event.file_id}"
        )
