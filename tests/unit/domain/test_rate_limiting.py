"""
Unit tests for the rate limiting domain.
"""

from calendar import timegm
from datetime import datetime, timedelta, timezone

import pytest

from cloudvault.domain.errors import RateLimitExceededError
from cloudvault.domain.rate_limiting import ClientIP, RateLimit, RateLimitEntity, RateLimitManager
from tests.fixtures.mock_repositories import MockRateLimitRepository


class TestClientIP:
    """Test ClientIP value object."""

    @pytest.mark.parametrize("address", ["192.168.1.1", "10.0.0.255", "::1", "2001:db8::1"])
    def test_valid_addresses(self, address):
        assert ClientIP(address).address == address

    @pytest.mark.parametrize("address", ["", "not-an-ip", "256.1.1.1", "1.2.3"])
    def test_invalid_addresses(self, address):
        with pytest.raises(ValueError, match="Invalid IP address"):
            ClientIP(address)

    def test_hash_is_stable_and_hides_address(self):
        ip = ClientIP("203.0.113.7")
        digest = ip.hash_for_key()

        assert digest == ClientIP("203.0.113.7").hash_for_key()
        assert len(digest) == 16
        int(digest, 16)
        assert digest != ClientIP("203.0.113.8").hash_for_key()

    def test_whitelist(self):
        ip = ClientIP("127.0.0.1")
        assert ip.is_whitelisted(["127.0.0.1", "::1"])
        assert not ip.is_whitelisted([])


class TestRateLimit:
    """Test fixed, epoch-aligned windows."""

    def test_minute_window_resets_on_next_minute(self):
        limit = RateLimit(limit=30, window_seconds=60, limit_type="share_resolve_minute")
        assert limit.reset_at(datetime(2025, 1, 15, 12, 0, 30)) == datetime(2025, 1, 15, 12, 1, 0)

    def test_hour_window_resets_on_next_hour(self):
        limit = RateLimit(limit=300, window_seconds=3600, limit_type="share_resolve_hourly")
        assert limit.reset_at(datetime(2025, 1, 15, 12, 59, 59)) == datetime(2025, 1, 15, 13, 0, 0)

    def test_boundary_starts_a_new_window(self):
        limit = RateLimit(limit=1, window_seconds=60, limit_type="minute")
        assert limit.reset_at(datetime(2025, 1, 15, 12, 0, 0)) == datetime(2025, 1, 15, 12, 1, 0)

    def test_aware_datetimes_are_normalized(self):
        limit = RateLimit(limit=1, window_seconds=60, limit_type="minute")
        aware = datetime(2025, 1, 15, 13, 0, 30, tzinfo=timezone(timedelta(hours=1)))
        assert limit.reset_at(aware) == datetime(2025, 1, 15, 12, 1, 0)

    @pytest.mark.parametrize("kwargs", [
        {"limit": 0, "window_seconds": 60, "limit_type": "x"},
        {"limit": 1, "window_seconds": 0, "limit_type": "x"},
        {"limit": 1, "window_seconds": 60, "limit_type": ""},
    ])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            RateLimit(**kwargs)


class TestRateLimitEntity:
    """Test counter state helpers."""

    def _entity(self, count, limit=10):
        return RateLimitEntity(
            client_ip=ClientIP("10.0.0.1"),
            limit_type="share_resolve_minute",
            current_count=count,
            limit=limit,
            reset_at=datetime(2025, 1, 15, 12, 1, 0),
        )

    def test_exceeded_once_limit_reached(self):
        assert not self._entity(9).is_exceeded()
        assert self._entity(10).is_exceeded()

    def test_remaining_never_negative(self):
        assert self._entity(3).remaining() == 7
        assert self._entity(12).remaining() == 0

    def test_retry_after_is_at_least_one_second(self):
        entity = self._entity(10)
        assert entity.retry_after_seconds(datetime(2025, 1, 15, 12, 0, 0)) == 60
        assert entity.retry_after_seconds(datetime(2025, 1, 15, 12, 1, 0)) == 1

    def test_headers(self):
        headers = self._entity(4).to_headers()
        assert headers == {
            "X-RateLimit-Limit": "10",
            "X-RateLimit-Remaining": "6",
            "X-RateLimit-Reset": str(timegm(datetime(2025, 1, 15, 12, 1, 0).utctimetuple())),
        }


class TestRateLimitManager:
    """Test check-then-count across several windows."""

    @pytest.fixture
    def repository(self, clock):
        return MockRateLimitRepository(clock)

    @pytest.fixture
    def manager(self, repository, clock):
        return RateLimitManager(repository, clock=clock)

    @pytest.fixture
    def limits(self):
        return [
            RateLimit(limit=2, window_seconds=60, limit_type="share_resolve_minute"),
            RateLimit(limit=3, window_seconds=3600, limit_type="share_resolve_hourly"),
        ]

    def test_counts_every_window(self, manager, limits):
        ip = ClientIP("10.0.0.1")

        entities = manager.check_and_count(ip, limits, whitelist=[])

        assert [e.current_count for e in entities] == [1, 1]
        assert [e.limit_type for e in entities] == ["share_resolve_minute", "share_resolve_hourly"]

    def test_rejects_when_window_exhausted(self, manager, limits):
        ip = ClientIP("10.0.0.1")
        manager.check_and_count(ip, limits, whitelist=[])
        manager.check_and_count(ip, limits, whitelist=[])

        with pytest.raises(RateLimitExceededError) as exc_info:
            manager.check_and_count(ip, limits, whitelist=[])

        error = exc_info.value
        assert error.http_status_code == 429
        assert error.context["limit_type"] == "share_resolve_minute"
        assert error.context["retry_after"] == 60

    def test_rejected_request_is_not_counted(self, manager, repository, limits):
        ip = ClientIP("10.0.0.1")
        manager.check_and_count(ip, limits, whitelist=[])
        manager.check_and_count(ip, limits, whitelist=[])
        with pytest.raises(RateLimitExceededError):
            manager.check_and_count(ip, limits, whitelist=[])

        assert repository.get_limit_state(ip, limits[1]).current_count == 2

    def test_new_window_restores_allowance(self, manager, limits, clock):
        ip = ClientIP("10.0.0.1")
        manager.check_and_count(ip, limits, whitelist=[])
        manager.check_and_count(ip, limits, whitelist=[])
        clock.advance(minutes=1)

        entities = manager.check_and_count(ip, limits, whitelist=[])

        assert [e.current_count for e in entities] == [1, 3]

    def test_hourly_window_binds_across_minutes(self, manager, limits, clock):
        ip = ClientIP("10.0.0.1")
        for _ in range(3):
            manager.check_and_count(ip, limits, whitelist=[])
            clock.advance(minutes=1)

        with pytest.raises(RateLimitExceededError) as exc_info:
            manager.check_and_count(ip, limits, whitelist=[])
        assert exc_info.value.context["limit_type"] == "share_resolve_hourly"

    def test_clients_are_counted_separately(self, manager, limits):
        manager.check_and_count(ClientIP("10.0.0.1"), limits, whitelist=[])
        manager.check_and_count(ClientIP("10.0.0.1"), limits, whitelist=[])

        entities = manager.check_and_count(ClientIP("10.0.0.2"), limits, whitelist=[])
        assert entities[0].current_count == 1

    def test_whitelisted_client_is_never_counted(self, manager, repository, limits):
        ip = ClientIP("127.0.0.1")
        for _ in range(5):
            entities = manager.check_and_count(ip, limits, whitelist=["127.0.0.1"])

        assert all(e.current_count == 0 for e in entities)
        assert repository.get_limit_state(ip, limits[0]).current_count == 0
