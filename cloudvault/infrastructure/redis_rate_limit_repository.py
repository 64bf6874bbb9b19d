"""
Redis Rate Limit Repository Implementation

Concrete Redis-based implementation of IRateLimitRepository.
Counters use INCR plus EXPIREAT at the window boundary; when Redis is
unreachable the repository degrades open.
"""

import logging

import redis

from ..domain.clock import Clock, utcnow
from ..domain.rate_limiting.entities import RateLimitEntity
from ..domain.rate_limiting.repositories import IRateLimitRepository
from ..domain.rate_limiting.value_objects import ClientIP, RateLimit

logger = logging.getLogger(__name__)


class RedisRateLimitRepository(IRateLimitRepository):
    """
    Redis-based implementation of the rate limit repository.

    Key format: ratelimit:{limit_type}:{ip_hash}
    """

    def __init__(self, redis_client: redis.Redis, clock: Clock = utcnow):
        """
        Initialize with a Redis client.

        Args:
            redis_client: Redis client instance (timeouts are configured on its pool)
            clock: Source of the current time
        """
        self.redis = redis_client
        self.clock = clock

    def get_limit_state(self, client_ip: ClientIP, rate_limit: RateLimit) -> RateLimitEntity:
        """
        Read the counter of the current window without changing it.

        Returns an empty entity when Redis is unavailable.
        """
        reset_at = rate_limit.reset_at(self.clock())
        try:
            value = self.redis.get(self._make_key(client_ip, rate_limit.limit_type))
        except redis.RedisError as e:
            logger.error(f"Redis error in get_limit_state: {e}")
            return self._empty_entity(client_ip, rate_limit)

        return RateLimitEntity(
            client_ip=client_ip,
            limit_type=rate_limit.limit_type,
            current_count=int(value) if value else 0,
            limit=rate_limit.limit,
            reset_at=reset_at,
        )

    def increment(self, client_ip: ClientIP, rate_limit: RateLimit) -> RateLimitEntity:
        """
        Atomically increment the counter and return the updated state.

        INCR and EXPIREAT run in one MULTI/EXEC pipeline so a counter
        never outlives its window.
        """
        key = self._make_key(client_ip, rate_limit.limit_type)
        reset_at = rate_limit.reset_at(self.clock())
        try:
            pipe = self.redis.pipeline()
            pipe.incr(key)
            pipe.expireat(key, RateLimitEntity.epoch(reset_at))
            new_count = pipe.execute()[0]
        except redis.RedisError as e:
            logger.error(f"Redis error in increment: {e}")
            return self._empty_entity(client_ip, rate_limit)

        return RateLimitEntity(
            client_ip=client_ip,
            limit_type=rate_limit.limit_type,
            current_count=int(new_count),
            limit=rate_limit.limit,
            reset_at=reset_at,
        )

    def reset_counter(self, client_ip: ClientIP, limit_type: str) -> bool:
        try:
            return self.redis.delete(self._make_key(client_ip, limit_type)) > 0
        except redis.RedisError as e:
            logger.error(f"Redis error in reset_counter: {e}")
            return False

    def _make_key(self, client_ip: ClientIP, limit_type: str) -> str:
        return f"ratelimit:{limit_type}:{client_ip.hash_for_key()}"

    def _empty_entity(self, client_ip: ClientIP, rate_limit: RateLimit) -> RateLimitEntity:
        return RateLimitEntity(
            client_ip=client_ip,
            limit_type=rate_limit.limit_type,
            current_count=0,
            limit=rate_limit.limit,
            reset_at=rate_limit.reset_at(self.clock()),
        )
