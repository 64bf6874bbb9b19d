import pytest
from sqlalchemy.engine import Engine

from cloudvault.app_factory import create_app
from cloudvault.application.dependency_container import build_container
from cloudvault.config.rate_limit_config import RateLimitConfig
from cloudvault.config.settings import Settings
from tests.fixtures.mock_repositories import MockRateLimitRepository

RESOLVES_PER_MINUTE = 3


@pytest.fixture
def settings(tmp_path):
    """Small quotas and a tight share limit so every edge is reachable over HTTP."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'cloudvault.db'}",
        storage_backend="local",
        local_storage_dir=str(tmp_path / "blobs"),
        secret_key="e2e-secret",
        free_tier_max_total_bytes=64,
        free_tier_max_file_bytes=32,
        rate_limit=RateLimitConfig(share_resolve_per_minute=RESOLVES_PER_MINUTE, share_resolve_hourly=50),
        log_level="DEBUG",
    )


@pytest.fixture
def app(settings, clock):
    container = build_container(
        settings,
        rate_limit_repository=MockRateLimitRepository(clock),
        clock=clock,
        sleep=lambda _: None,
    )
    app = create_app(settings, container=container)
    app.config["TESTING"] = True
    yield app
    container.resolve(Engine).dispose()


@pytest.fixture
def client(app):
    return app.test_client()
