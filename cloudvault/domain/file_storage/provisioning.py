"""
Namespace Provisioning

Domain service that makes sure an owner has a storage namespace before
their first transfer.
"""

from typing import Callable, Optional

from ..clock import Clock, utcnow
from ..errors import ProvisioningFailedError, StorageBackendUnavailableError
from ..events import BackendRetryEvent, DomainEvent, NamespaceProvisionedEvent
from ..retry import RetryPolicy
from .blob_store import IBlobStore
from .entities import BucketBinding
from .repositories import BucketBindingRepository
from .value_objects import namespace_for

EventSink = Callable[[DomainEvent], None]


def _discard(event: DomainEvent) -> None:
    return None


class BucketProvisioner:
    """
    Ensures a per-owner namespace exists and is bound in the catalog.

    The namespace name is derived deterministically from the owner id, so
    every retry (in this process or a concurrent one) targets the same
    namespace. The binding is written only after the namespace was created
    and verified; a failed provisioning leaves no catalog row behind.
    """

    def __init__(
        self,
        blob_store: IBlobStore,
        bindings: BucketBindingRepository,
        retry_policy: RetryPolicy,
        namespace_prefix: str = "cloudvault-user",
        clock: Clock = utcnow,
        publish: Optional[EventSink] = None,
    ):
        self.blob_store = blob_store
        self.bindings = bindings
        self.retry_policy = retry_policy
        self.namespace_prefix = namespace_prefix
        self.clock = clock
        self.publish = publish or _discard

    def namespace_name(self, owner_id: str) -> str:
        return namespace_for(owner_id, self.namespace_prefix)

    def ensure_namespace(self, owner_id: str) -> str:
        """
        Return the owner's namespace, creating it on first use.

        Args:
            owner_id: Owner identifier

        Returns:
            Namespace name

        Raises:
            ProvisioningFailedError: If the backend stayed unavailable after
                all retries, or the namespace could not be verified
        """
        existing = self.bindings.get(owner_id)
        if existing is not None:
            return existing.namespace

        namespace = self.namespace_name(owner_id)
        attempts = {"count": 0}

        def create_and_verify() -> None:
            attempts["count"] += 1
            self.blob_store.create_namespace(namespace)
            if not self.blob_store.namespace_exists(namespace):
                raise StorageBackendUnavailableError(
                    f"Namespace {namespace} is not reachable after creation"
                )

        def on_retry(attempt: int, error: BaseException, delay: float) -> None:
            self.publish(BackendRetryEvent(
                aggregate_id=owner_id,
                occurred_at=self.clock(),
                operation="create_namespace",
                attempt=attempt,
                delay_seconds=delay,
                error=str(error),
            ))

        try:
            self.retry_policy.call(create_and_verify, on_retry=on_retry)
        except StorageBackendUnavailableError as e:
            raise ProvisioningFailedError(
                f"Could not provision namespace {namespace} for owner {owner_id} "
                f"after {attempts['count']} attempt(s): {e}",
                original_error=e,
            ) from e

        binding = self.bindings.create_if_absent(
            BucketBinding(owner_id=owner_id, namespace=namespace, created_at=self.clock())
        )

        self.publish(NamespaceProvisionedEvent(
            aggregate_id=owner_id,
            occurred_at=self.clock(),
            namespace=binding.namespace,
            attempts=attempts["count"],
        ))
        return binding.namespace
