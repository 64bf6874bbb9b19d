"""
Reconciliation Tasks

Celery beat tasks that keep the quota ledger honest and report blobs left
behind by unconfirmed uploads.
"""

import logging
from typing import Any, Dict

from celery import shared_task
from flask import current_app

from ..application.dependency_container import DependencyContainer
from ..application.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)


def run_usage_reconciliation(container: DependencyContainer) -> Dict[str, Any]:
    """Recompute every owner's ledger; see ReconciliationService.reconcile_all."""
    return container.resolve(ReconciliationService).reconcile_all()


def run_orphan_report(container: DependencyContainer) -> Dict[str, Any]:
    """List unreferenced objects per owner without deleting them."""
    return container.resolve(ReconciliationService).report_orphans()


@shared_task(bind=True, name="tasks.reconcile_storage_usage")
def reconcile_storage_usage(self) -> Dict[str, Any]:
    """
    Periodic backstop for StorageUsage.total_bytes.

    Runs every 15 minutes by default. Each owner is recomputed under their
    ledger lock, so the task is safe to run next to live uploads.
    """
    logger.info("Starting storage usage reconciliation")
    stats = run_usage_reconciliation(current_app.container)
    logger.info(
        f"Storage usage reconciliation finished: {stats['checked']} checked, "
        f"{len(stats['corrected'])} corrected"
    )
    return stats


@shared_task(bind=True, name="tasks.report_orphaned_objects")
def report_orphaned_objects(self) -> Dict[str, Any]:
    """Periodic report of objects that no file record points at."""
    logger.info("Starting orphaned object report")
    report = run_orphan_report(current_app.container)
    if report["orphan_count"]:
        logger.warning(f"Found {report['orphan_count']} orphaned object(s)")
    return report
