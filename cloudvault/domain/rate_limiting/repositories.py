"""
Rate Limiting Repositories

Repository interface for rate limit counters.
Concrete implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod

from .entities import RateLimitEntity
from .value_objects import ClientIP, RateLimit


class IRateLimitRepository(ABC):
    """Abstract repository interface for rate limit counters."""

    @abstractmethod
    def get_limit_state(self, client_ip: ClientIP, rate_limit: RateLimit) -> RateLimitEntity:
        """
        Get current counter state for a client without changing it.

        Args:
            client_ip: Client IP address
            rate_limit: Rate limit configuration

        Returns:
            RateLimitEntity with current state
        """
        ...

    @abstractmethod
    def increment(self, client_ip: ClientIP, rate_limit: RateLimit) -> RateLimitEntity:
        """
        Atomically increment the counter and return the updated state.

        The counter expires at the end of the current window.
        """
        ...

    @abstractmethod
    def reset_counter(self, client_ip: ClientIP, limit_type: str) -> bool:
        """
        Reset the counter for one limit type.

        Returns:
            True if a counter was removed
        """
        ...
