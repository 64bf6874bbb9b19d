"""
Rate Limit Application Service

Applies the configured per-IP windows to anonymous share resolution.
"""

from typing import List

from ..config.rate_limit_config import RateLimitConfig
from ..domain.rate_limiting.entities import RateLimitEntity
from ..domain.rate_limiting.services import RateLimitManager
from ..domain.rate_limiting.value_objects import ClientIP, RateLimit


class RateLimitService:
    """
    Application service for rate limit orchestration.

    Share resolution is limited by a per-minute burst window and an hourly
    window. Both are checked before either is counted.
    """

    def __init__(self, rate_limit_manager: RateLimitManager, config: RateLimitConfig):
        """
        Initialize with domain manager and configuration.

        Args:
            rate_limit_manager: Domain service for rate limiting business logic
            config: Rate limit configuration from environment
        """
        self.manager = rate_limit_manager
        self.config = config

    def share_resolve_limits(self) -> List[RateLimit]:
        return [
            RateLimit(
                limit=self.config.share_resolve_per_minute,
                window_seconds=60,
                limit_type='share_resolve_per_minute',
            ),
            RateLimit(
                limit=self.config.share_resolve_hourly,
                window_seconds=3600,
                limit_type='share_resolve_hourly',
            ),
        ]

    def check_share_resolve_limits(self, client_ip: str) -> List[RateLimitEntity]:
        """
        Check and count one share resolution for a client.

        Args:
            client_ip: Client IP address string

        Returns:
            Updated entity per window, empty when enforcement is disabled

        Raises:
            RateLimitExceededError: If any window is exhausted
            ValueError: If client_ip is not an IP address
        """
        if not self.config.should_enforce():
            return []
        return self.manager.check_and_count(
            ClientIP(client_ip),
            self.share_resolve_limits(),
            self.config.whitelist,
        )

    def get_most_restrictive_entity(self, entities: List[RateLimitEntity]) -> RateLimitEntity:
        """
        Find the limit with the lowest remaining count.

        Used to pick the X-RateLimit-* headers when several windows apply.

        Raises:
            ValueError: If entities list is empty
        """
        if not entities:
            raise ValueError("No entities provided")
        return min(entities, key=lambda e: e.remaining())
