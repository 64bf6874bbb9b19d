"""
Rate Limiting Value Objects

Immutable value objects for rate limiting with zero external dependencies.
"""

import hashlib
import ipaddress
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable

_EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class ClientIP:
    """
    Immutable client IP address value object.

    Validates the address format and hashes it for counter keys so raw
    addresses never land in Redis.
    """
    address: str

    def __post_init__(self):
        try:
            ipaddress.ip_address(self.address)
        except ValueError as e:
            raise ValueError(f"Invalid IP address format: {self.address}") from e

    def is_whitelisted(self, whitelist: Iterable[str]) -> bool:
        return self.address in set(whitelist)

    def hash_for_key(self) -> str:
        """16-character hexadecimal digest of the address."""
        return hashlib.sha256(self.address.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class RateLimit:
    """
    Immutable rate limit configuration value object.

    Windows are fixed and aligned to the epoch: a 60 second window resets
    on every minute boundary, a 3600 second window on every hour boundary.
    """
    limit: int
    window_seconds: int
    limit_type: str

    def __post_init__(self):
        if self.limit <= 0:
            raise ValueError(f"Limit must be positive, got {self.limit}")
        if self.window_seconds <= 0:
            raise ValueError(f"Window must be positive, got {self.window_seconds}")
        if not self.limit_type:
            raise ValueError("Limit type is required")

    def reset_at(self, now: datetime) -> datetime:
        """
        End of the window containing ``now`` (naive UTC).

        Args:
            now: Current time

        Returns:
            Next window boundary, strictly after ``now``
        """
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc).replace(tzinfo=None)
        elapsed = int((now - _EPOCH).total_seconds())
        window_start = elapsed - (elapsed % self.window_seconds)
        return _EPOCH + timedelta(seconds=window_start + self.window_seconds)
