"""
Unit tests for BucketProvisioner.
"""

import pytest

from cloudvault.domain.errors import ProvisioningFailedError
from cloudvault.domain.events import BackendRetryEvent, NamespaceProvisionedEvent
from tests.conftest import OWNER, OTHER_OWNER


class TestEnsureNamespace:
    """Test lazy, idempotent namespace provisioning."""

    def test_first_use_creates_and_binds(self, provisioner, blob_store, bindings, events):
        namespace = provisioner.ensure_namespace(OWNER)

        assert namespace == provisioner.namespace_name(OWNER)
        assert namespace in blob_store.namespaces
        assert bindings.get(OWNER).namespace == namespace

        provisioned = [e for e in events if isinstance(e, NamespaceProvisionedEvent)]
        assert len(provisioned) == 1
        assert provisioned[0].attempts == 1

    def test_existing_binding_skips_backend(self, provisioner, blob_store):
        provisioner.ensure_namespace(OWNER)
        calls_before = len(blob_store.get_calls())

        assert provisioner.ensure_namespace(OWNER) == provisioner.namespace_name(OWNER)
        assert len(blob_store.get_calls()) == calls_before

    def test_owners_get_distinct_namespaces(self, provisioner):
        assert provisioner.ensure_namespace(OWNER) != provisioner.ensure_namespace(OTHER_OWNER)

    def test_namespace_left_by_earlier_attempt_is_reused(self, provisioner, blob_store, bindings):
        """A namespace created before a crash is adopted on the next attempt."""
        namespace = provisioner.namespace_name(OWNER)
        blob_store.namespaces.add(namespace)

        assert provisioner.ensure_namespace(OWNER) == namespace
        assert bindings.get(OWNER).namespace == namespace

    def test_transient_failures_are_retried(self, provisioner, blob_store, events, sleeps):
        blob_store.fail_times["create_namespace"] = 2

        namespace = provisioner.ensure_namespace(OWNER)

        assert namespace in blob_store.namespaces
        assert sleeps == [0.1, 0.2]
        retries = [e for e in events if isinstance(e, BackendRetryEvent)]
        assert [e.attempt for e in retries] == [1, 2]
        assert all(e.operation == "create_namespace" for e in retries)
        provisioned = [e for e in events if isinstance(e, NamespaceProvisionedEvent)]
        assert provisioned[0].attempts == 3

    def test_exhausted_retries_fail_without_binding(self, provisioner, blob_store, bindings):
        blob_store.fail_times["create_namespace"] = 3

        with pytest.raises(ProvisioningFailedError) as exc_info:
            provisioner.ensure_namespace(OWNER)

        assert exc_info.value.retryable is True
        assert "3 attempt(s)" in str(exc_info.value)
        assert bindings.get(OWNER) is None

    def test_unreachable_namespace_is_not_bound(self, provisioner, blob_store, bindings):
        blob_store.unreachable_namespaces.add(provisioner.namespace_name(OWNER))

        with pytest.raises(ProvisioningFailedError):
            provisioner.ensure_namespace(OWNER)

        assert bindings.get(OWNER) is None
        assert len(blob_store.get_calls("namespace_exists")) == 3

    def test_retry_after_failure_targets_same_namespace(self, provisioner, blob_store):
        blob_store.fail_times["create_namespace"] = 3
        with pytest.raises(ProvisioningFailedError):
            provisioner.ensure_namespace(OWNER)

        namespace = provisioner.ensure_namespace(OWNER)

        targets = {call["args"]["name"] for call in blob_store.get_calls("create_namespace")}
        assert targets == {namespace}
