"""
Shared pytest fixtures and configuration for the CloudVault test suite.

This module provides:
- Hypothesis configuration for property-based testing
- A controllable clock and a retry policy that never sleeps
- Domain services wired to in-memory repositories and blob store
"""

from datetime import datetime
from typing import List

import pytest
from hypothesis import HealthCheck, Phase, settings

from cloudvault.domain.events import DomainEvent
from cloudvault.domain.file_storage import (
    BucketProvisioner,
    FileOrganizer,
    QuotaPolicy,
    QuotaPolicyResolver,
    StorageTier,
    TransferCoordinator,
)
from cloudvault.domain.retry import RetryPolicy
from cloudvault.domain.sharing import ShareLinkIssuer
from tests.fixtures.domain_fixtures import FakeClock
from tests.fixtures.mock_blob_store import MockBlobStore
from tests.fixtures.mock_repositories import (
    MockBucketBindingRepository,
    MockFileCatalog,
    MockFolderRepository,
    MockShareLinkRepository,
)

# Register Hypothesis profiles
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.load_profile("default")

OWNER = "alice"
OTHER_OWNER = "bob"
PREMIUM_OWNER = "vip"

FREE_TOTAL = 1000
FREE_FILE = 400
PREMIUM_TOTAL = 100_000
PREMIUM_FILE = 50_000


# =============================================================================
# Time and Retry Fixtures
# =============================================================================

@pytest.fixture
def fixed_datetime() -> datetime:
    """Provide a fixed naive UTC datetime for deterministic testing."""
    return datetime(2025, 1, 15, 12, 0, 0)


@pytest.fixture
def clock(fixed_datetime) -> FakeClock:
    return FakeClock(fixed_datetime)


@pytest.fixture
def sleeps() -> List[float]:
    """Delays requested by the retry policy, in order."""
    return []


@pytest.fixture
def retry_policy(sleeps) -> RetryPolicy:
    return RetryPolicy(max_attempts=3, initial_delay=0.1, multiplier=2.0, sleep=sleeps.append)


@pytest.fixture
def events() -> List[DomainEvent]:
    """Domain events published by the services under test."""
    return []


# =============================================================================
# Repository Fixtures
# =============================================================================

@pytest.fixture
def catalog() -> MockFileCatalog:
    return MockFileCatalog()


@pytest.fixture
def folders(catalog) -> MockFolderRepository:
    return MockFolderRepository(catalog)


@pytest.fixture
def bindings() -> MockBucketBindingRepository:
    return MockBucketBindingRepository()


@pytest.fixture
def share_repository() -> MockShareLinkRepository:
    return MockShareLinkRepository()


@pytest.fixture
def blob_store(clock) -> MockBlobStore:
    return MockBlobStore(clock)


# =============================================================================
# Domain Service Fixtures
# =============================================================================

@pytest.fixture
def quota_resolver() -> QuotaPolicyResolver:
    """Small limits so quota edges are easy to reach."""
    return QuotaPolicyResolver(
        free=QuotaPolicy(StorageTier.FREE, FREE_TOTAL, FREE_FILE),
        premium=QuotaPolicy(StorageTier.PREMIUM, PREMIUM_TOTAL, PREMIUM_FILE),
        premium_owner_ids=[PREMIUM_OWNER],
    )


@pytest.fixture
def provisioner(blob_store, bindings, retry_policy, clock, events) -> BucketProvisioner:
    return BucketProvisioner(
        blob_store,
        bindings,
        retry_policy,
        namespace_prefix="cv-test",
        clock=clock,
        publish=events.append,
    )


@pytest.fixture
def coordinator(
    blob_store, catalog, provisioner, quota_resolver, retry_policy, folders, clock, events
) -> TransferCoordinator:
    return TransferCoordinator(
        blob_store,
        catalog,
        provisioner,
        quota_resolver,
        retry_policy,
        folders=folders,
        clock=clock,
        publish=events.append,
    )


@pytest.fixture
def organizer(coordinator, catalog, folders, clock) -> FileOrganizer:
    return FileOrganizer(coordinator, catalog, folders, clock=clock)


@pytest.fixture
def issuer(share_repository, catalog, clock, events) -> ShareLinkIssuer:
    return ShareLinkIssuer(share_repository, catalog, clock=clock, publish=events.append)


# =============================================================================
# Pytest Configuration Hooks
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (SQLite, filesystem, optional Redis)"
    )
    config.addinivalue_line(
        "markers", "contract: Shared contract suites run against every adapter"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests (full HTTP workflows)"
    )
    config.addinivalue_line(
        "markers", "property: Property-based tests using Hypothesis"
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically mark tests based on their location.

    - tests/unit/* -> @pytest.mark.unit
    - tests/integration/* -> @pytest.mark.integration
    - tests/contracts/* -> @pytest.mark.contract
    - tests/e2e/* -> @pytest.mark.e2e
    - tests/property/* -> @pytest.mark.property
    """
    for item in items:
        test_path = str(item.fspath)

        if "/unit/" in test_path or "\\unit\\" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path or "\\integration\\" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/contracts/" in test_path or "\\contracts\\" in test_path:
            item.add_marker(pytest.mark.contract)
        elif "/e2e/" in test_path or "\\e2e\\" in test_path:
            item.add_marker(pytest.mark.e2e)
        elif "/property/" in test_path or "\\property\\" in test_path:
            item.add_marker(pytest.mark.property)
