"""
Rate Limiting Entities

Domain entities for rate limiting with zero external dependencies.
"""

from calendar import timegm
from dataclasses import dataclass
from datetime import datetime
from typing import Dict

from .value_objects import ClientIP


@dataclass
class RateLimitEntity:
    """
    Current counter state of one rate limit window for a client IP.
    """
    client_ip: ClientIP
    limit_type: str
    current_count: int
    limit: int
    reset_at: datetime

    @staticmethod
    def epoch(value: datetime) -> int:
        """Seconds since the epoch for a naive UTC datetime."""
        return timegm(value.utctimetuple())

    def is_exceeded(self) -> bool:
        """True once the count has reached the limit."""
        return self.current_count >= self.limit

    def remaining(self) -> int:
        return max(0, self.limit - self.current_count)

    def retry_after_seconds(self, now: datetime) -> int:
        return max(1, int((self.reset_at - now).total_seconds()))

    def to_headers(self) -> Dict[str, str]:
        """
        Generate HTTP headers for rate limit information.

        Returns:
            Dictionary with X-RateLimit-* headers
        """
        return {
            'X-RateLimit-Limit': str(self.limit),
            'X-RateLimit-Remaining': str(self.remaining()),
            'X-RateLimit-Reset': str(self.epoch(self.reset_at)),
        }
