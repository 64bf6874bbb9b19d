"""
Unit tests for EventPublisher and LoggingEventHandler.
"""

import logging
from datetime import datetime

from cloudvault.application.event_publisher import EventPublisher
from cloudvault.domain.events import (
    BackendRetryEvent,
    DomainEvent,
    FileDeletedEvent,
    ShareExtendedEvent,
    UploadConfirmedEvent,
    UsageReconciledEvent,
)
from cloudvault.infrastructure.event_handlers import LoggingEventHandler

NOW = datetime(2025, 1, 15, 12, 0, 0)


def _deleted(file_id="f1"):
    return FileDeletedEvent(aggregate_id="alice", occurred_at=NOW, file_id=file_id, size_bytes=10, total_bytes=0)


class TestEventPublisher:
    """Test synchronous dispatch."""

    def test_handlers_receive_events_of_their_type(self):
        publisher = EventPublisher()
        received = []
        publisher.subscribe(FileDeletedEvent, received.append)

        publisher.publish(_deleted())
        publisher.publish(UsageReconciledEvent(aggregate_id="alice", occurred_at=NOW, previous_total=1, recomputed_total=0))

        assert [type(e) for e in received] == [FileDeletedEvent]

    def test_base_class_subscription_receives_everything(self):
        publisher = EventPublisher()
        received = []
        publisher.subscribe(DomainEvent, received.append)

        publisher.publish(_deleted())
        publisher.publish(ShareExtendedEvent(aggregate_id="s1", occurred_at=NOW, policy="1h", expires_at=NOW))

        assert len(received) == 2

    def test_handlers_run_in_subscription_order(self):
        publisher = EventPublisher()
        calls = []
        publisher.subscribe(FileDeletedEvent, lambda e: calls.append("first"))
        publisher.subscribe(FileDeletedEvent, lambda e: calls.append("second"))

        publisher.publish(_deleted())

        assert calls == ["first", "second"]

    def test_failing_handler_does_not_break_others(self, caplog):
        publisher = EventPublisher()
        received = []

        def broken(event):
            raise RuntimeError("handler down")

        publisher.subscribe(FileDeletedEvent, broken)
        publisher.subscribe(FileDeletedEvent, received.append)

        with caplog.at_level(logging.ERROR):
            publisher.publish(_deleted())

        assert len(received) == 1
        assert "handler down" in caplog.text

    def test_publish_without_handlers(self):
        EventPublisher().publish(_deleted())


class TestLoggingEventHandler:
    """Test that domain events reach the log."""

    def test_info_events(self, caplog):
        handler = LoggingEventHandler(logging.getLogger("tests.events"))

        with caplog.at_level(logging.INFO, logger="tests.events"):
            handler.handle(_deleted("f9"))

        assert "File deleted: owner_id=alice, file_id=f9" in caplog.text

    def test_retries_and_corrections_are_warnings(self, caplog):
        handler = LoggingEventHandler(logging.getLogger("tests.events"))

        with caplog.at_level(logging.INFO, logger="tests.events"):
            handler.handle(BackendRetryEvent(
                aggregate_id="alice", occurred_at=NOW, operation="create_namespace",
                attempt=1, delay_seconds=0.2, error="503",
            ))
            handler.handle(UsageReconciledEvent(
                aggregate_id="alice", occurred_at=NOW, previous_total=50, recomputed_total=40,
            ))

        assert [r.levelno for r in caplog.records] == [logging.WARNING, logging.WARNING]
        assert "50 -> 40 bytes" in caplog.text

    def test_repeated_confirm_logged_at_debug(self, caplog):
        handler = LoggingEventHandler(logging.getLogger("tests.events"))

        with caplog.at_level(logging.INFO, logger="tests.events"):
            handler.handle(UploadConfirmedEvent(
                aggregate_id="alice", occurred_at=NOW, file_id="f1",
                object_key="users/alice/k", size_bytes=5, created=False,
            ))

        assert caplog.records == []
