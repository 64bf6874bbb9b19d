"""
Sharing Value Objects

Immutable value objects for share tokens and expiration policies.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from ..errors import InvalidRequestError


class InvalidShareTokenError(ValueError):
    """Raised when a share token is malformed."""
    pass


@dataclass(frozen=True)
class ShareToken:
    """
    Value object representing a validated share token.

    Tokens carry 32 bytes of randomness (about 43 URL-safe characters).
    Anything shorter than 32 characters or containing characters outside
    the URL-safe alphabet is rejected before touching storage.
    """
    value: str

    def __post_init__(self):
        if not self._is_valid():
            raise InvalidShareTokenError("Invalid share token")

    def _is_valid(self) -> bool:
        if not self.value or not isinstance(self.value, str):
            return False
        if len(self.value) < 32 or len(self.value) > 128:
            return False
        return all(c.isascii() and (c.isalnum() or c in "-_") for c in self.value)

    @classmethod
    def generate(cls) -> "ShareToken":
        """Generate a new cryptographically secure token."""
        return cls(secrets.token_urlsafe(32))

    def __str__(self) -> str:
        return self.value


class ExpirationPolicy(Enum):
    """Share lifetime options offered to owners."""

    ONE_HOUR = "1h"
    ONE_DAY = "24h"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    NEVER = "never"

    @property
    def lifetime(self) -> Optional[timedelta]:
        return _LIFETIMES[self]

    def expires_at(self, now: datetime) -> Optional[datetime]:
        """Concrete expiration for a share created (or extended) at ``now``."""
        lifetime = self.lifetime
        return now + lifetime if lifetime is not None else None

    @classmethod
    def parse(cls, value) -> "ExpirationPolicy":
        """
        Parse a policy from its string form.

        Raises:
            InvalidRequestError: For unknown values
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(policy.value for policy in cls)
            raise InvalidRequestError(
                f"Unknown expiration policy {value!r}; expected one of {allowed}"
            )


_LIFETIMES = {
    ExpirationPolicy.ONE_HOUR: timedelta(hours=1),
    ExpirationPolicy.ONE_DAY: timedelta(hours=24),
    ExpirationPolicy.SEVEN_DAYS: timedelta(days=7),
    ExpirationPolicy.THIRTY_DAYS: timedelta(days=30),
    ExpirationPolicy.NEVER: None,
}
