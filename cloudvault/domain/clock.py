"""
Clock helpers.

All timestamps in the domain are naive UTC datetimes, matching how they are
stored in the catalog.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
