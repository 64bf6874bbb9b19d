"""
Reconciliation Application Service

Periodic backstop for the quota ledger and for blobs left behind by
uploads that were never confirmed.
"""

import logging
from datetime import timedelta
from typing import Any, Dict

from ..domain.clock import Clock, utcnow
from ..domain.errors import DomainError
from ..domain.file_storage import BucketBindingRepository, FileCatalog, TransferCoordinator

logger = logging.getLogger(__name__)


class ReconciliationService:
    """
    Sweeps every known owner. A failure for one owner is logged and the
    sweep continues with the next one.
    """

    def __init__(
        self,
        coordinator: TransferCoordinator,
        catalog: FileCatalog,
        bindings: BucketBindingRepository,
        orphan_age: timedelta,
        clock: Clock = utcnow,
    ):
        """
        Initialize ReconciliationService.

        Args:
            coordinator: Transfer coordinator owning the ledger operations
            catalog: File catalog, used to enumerate owners
            bindings: Namespace bindings, used to enumerate namespaces
            orphan_age: Minimum age of an unreferenced object before it is
                reported (upload capability TTL plus a grace period)
            clock: Source of the current time
        """
        self.coordinator = coordinator
        self.catalog = catalog
        self.bindings = bindings
        self.orphan_age = orphan_age
        self.clock = clock

    def reconcile_all(self) -> Dict[str, Any]:
        """
        Recompute every owner's ledger from their records.

        Returns:
            Summary with owners checked, corrected and failed
        """
        owners = set(self.catalog.list_owner_ids())
        owners.update(binding.owner_id for binding in self.bindings.list_all())

        corrected = {}
        failed = []
        for owner_id in sorted(owners):
            try:
                previous, recomputed = self.coordinator.reconcile_usage(owner_id)
            except DomainError as e:
                logger.error(f"Usage reconciliation failed for {owner_id}: {e}")
                failed.append(owner_id)
                continue
            if previous != recomputed:
                corrected[owner_id] = {"previous": previous, "recomputed": recomputed}

        logger.info(
            f"Usage reconciliation checked {len(owners)} owners, "
            f"corrected {len(corrected)}, failed {len(failed)}"
        )
        return {"checked": len(owners), "corrected": corrected, "failed": failed}

    def report_orphans(self) -> Dict[str, Any]:
        """
        List unreferenced objects per owner. Nothing is deleted.

        Returns:
            Summary mapping owner ids to orphaned object keys
        """
        cutoff = self.clock() - self.orphan_age
        orphans = {}
        failed = []
        for binding in self.bindings.list_all():
            try:
                found = self.coordinator.find_orphaned_objects(binding.owner_id, cutoff)
            except DomainError as e:
                logger.error(f"Orphan scan failed for {binding.owner_id}: {e}")
                failed.append(binding.owner_id)
                continue
            if found:
                orphans[binding.owner_id] = [obj.key for obj in found]
                logger.warning(
                    f"{len(found)} orphaned object(s) in {binding.namespace} "
                    f"({sum(obj.size_bytes for obj in found)} bytes)"
                )

        return {
            "orphans": orphans,
            "orphan_count": sum(len(keys) for keys in orphans.values()),
            "failed": failed,
        }
