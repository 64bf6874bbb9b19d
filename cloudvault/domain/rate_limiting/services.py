"""
Rate Limiting Domain Services

Domain service for rate limiting business logic with zero external dependencies.
"""

from typing import Iterable, List, Sequence

from ..clock import Clock, utcnow
from ..errors import ErrorCategory, RateLimitExceededError
from .entities import RateLimitEntity
from .repositories import IRateLimitRepository
from .value_objects import ClientIP, RateLimit


class RateLimitManager:
    """
    Domain service for rate limiting business logic.

    Checks every configured window before counting the request, so a
    rejected request never consumes allowance in another window.
    """

    def __init__(self, repository: IRateLimitRepository, clock: Clock = utcnow):
        """
        Initialize with repository interface.

        Args:
            repository: Rate limit repository implementation
            clock: Source of the current time
        """
        self.repository = repository
        self.clock = clock

    def check_limit(
        self,
        client_ip: ClientIP,
        rate_limit: RateLimit,
        whitelist: Iterable[str],
    ) -> RateLimitEntity:
        """
        Check whether a client has exhausted one window.

        Returns:
            RateLimitEntity with current state

        Raises:
            RateLimitExceededError: If the limit is reached
        """
        if client_ip.is_whitelisted(whitelist):
            return self._unlimited_entity(client_ip, rate_limit)

        entity = self.repository.get_limit_state(client_ip, rate_limit)
        if entity.is_exceeded():
            raise RateLimitExceededError(
                category=ErrorCategory.RATE_LIMITED,
                technical_message=f"Rate limit exceeded for {client_ip.address}",
                context={
                    'limit_type': rate_limit.limit_type,
                    'limit': rate_limit.limit,
                    'reset_at': entity.reset_at.isoformat(),
                    'retry_after': entity.retry_after_seconds(self.clock()),
                },
            )
        return entity

    def check_and_count(
        self,
        client_ip: ClientIP,
        rate_limits: Sequence[RateLimit],
        whitelist: Iterable[str],
    ) -> List[RateLimitEntity]:
        """
        Check all windows, then count the request against each of them.

        Returns:
            Updated entity per window, in the order given

        Raises:
            RateLimitExceededError: If any window is exhausted
        """
        whitelist = list(whitelist)
        for rate_limit in rate_limits:
            self.check_limit(client_ip, rate_limit, whitelist)

        if client_ip.is_whitelisted(whitelist):
            return [self._unlimited_entity(client_ip, limit) for limit in rate_limits]
        return [self.repository.increment(client_ip, limit) for limit in rate_limits]

    def _unlimited_entity(self, client_ip: ClientIP, rate_limit: RateLimit) -> RateLimitEntity:
        return RateLimitEntity(
            client_ip=client_ip,
            limit_type=rate_limit.limit_type,
            current_count=0,
            limit=rate_limit.limit,
            reset_at=rate_limit.reset_at(self.clock()),
        )
