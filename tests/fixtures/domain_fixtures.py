"""
Domain Fixtures

Controllable clock and helpers that drive the full upload handshake
against the mock blob store.
"""

from datetime import datetime, timedelta
from typing import Optional

from cloudvault.domain.file_storage.entities import FileRecord


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def complete_upload(
    coordinator,
    blob_store,
    owner_id: str,
    size_bytes: int,
    file_name: str = "report.pdf",
    content_type: Optional[str] = "application/pdf",
    folder_id: Optional[str] = None,
) -> FileRecord:
    """Request a capability, upload through the mock backend and confirm."""
    ticket = coordinator.request_upload(owner_id, file_name, content_type, size_bytes)
    blob_store.simulate_upload(ticket.object_key, size_bytes)
    return coordinator.confirm_upload(
        owner_id,
        ticket.object_key,
        size_bytes,
        file_name=file_name,
        content_type=content_type,
        folder_id=folder_id,
    )
