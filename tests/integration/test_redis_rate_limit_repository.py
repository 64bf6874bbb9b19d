"""
Redis Rate Limit Repository Integration Tests

Runs the counters against a real Redis server; skipped when none is
reachable.
"""

from datetime import datetime

import pytest

from cloudvault.domain.rate_limiting import ClientIP, RateLimit, RateLimitEntity
from cloudvault.infrastructure.redis_rate_limit_repository import RedisRateLimitRepository

TEST_IP = "192.168.1.100"
TEST_IP_V6 = "2001:db8:85a3::8a2e:370:7334"


@pytest.fixture
def repository(redis_client):
    return RedisRateLimitRepository(redis_client, clock=datetime.utcnow)


def test_increment_is_atomic_and_visible(repository):
    limit = RateLimit(limit=5, window_seconds=60, limit_type="share_resolve_per_minute")
    client_ip = ClientIP(TEST_IP)

    counts = [repository.increment(client_ip, limit).current_count for _ in range(3)]

    assert counts == [1, 2, 3]
    assert repository.get_limit_state(client_ip, limit).current_count == 3


def test_counter_expires_at_window_end(repository, redis_client):
    limit = RateLimit(limit=5, window_seconds=3600, limit_type="share_resolve_hourly")
    client_ip = ClientIP(TEST_IP_V6)

    entity = repository.increment(client_ip, limit)

    ttl = redis_client.ttl(repository._make_key(client_ip, limit.limit_type))
    expected = RateLimitEntity.epoch(entity.reset_at) - RateLimitEntity.epoch(datetime.utcnow())
    assert 0 < ttl <= 3600
    assert abs(ttl - expected) <= 2


def test_reset_counter(repository):
    limit = RateLimit(limit=5, window_seconds=60, limit_type="share_resolve_per_minute")
    client_ip = ClientIP(TEST_IP)
    repository.increment(client_ip, limit)

    assert repository.reset_counter(client_ip, limit.limit_type) is True
    assert repository.get_limit_state(client_ip, limit).current_count == 0
    assert repository.reset_counter(client_ip, limit.limit_type) is False
