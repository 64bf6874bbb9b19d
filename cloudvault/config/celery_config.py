"""
Celery Configuration

Configures Celery with Flask integration, Redis broker, task routing and
the beat schedule of the reconciliation tasks.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict

from celery import Celery
from kombu import Queue


@dataclass
class CeleryConfig:
    """Celery configuration settings."""

    broker_url: str = "redis://localhost:6379/0"
    result_backend: str = "redis://localhost:6379/0"
    reconcile_interval_seconds: float = 900.0
    orphan_report_interval_seconds: float = 3600.0
    worker_concurrency: int = 2
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "CeleryConfig":
        return cls(
            broker_url=os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0"),
            result_backend=os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0"),
            reconcile_interval_seconds=float(os.getenv("RECONCILE_INTERVAL_SECONDS", 900)),
            orphan_report_interval_seconds=float(os.getenv("ORPHAN_REPORT_INTERVAL_SECONDS", 3600)),
            worker_concurrency=int(os.getenv("CELERY_WORKER_CONCURRENCY", 2)),
        )

    def to_celery_conf(self) -> Dict[str, Any]:
        """Settings mapping passed to ``Celery.conf.update``."""
        conf = {
            # Task settings
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": "UTC",
            "enable_utc": True,
            # Worker settings
            "worker_prefetch_multiplier": 1,
            "task_acks_late": True,
            "worker_max_tasks_per_child": 50,
            "worker_concurrency": self.worker_concurrency,
            # Task routing
            "task_routes": {
                "tasks.reconcile_storage_usage": {"queue": "maintenance_queue"},
                "tasks.report_orphaned_objects": {"queue": "maintenance_queue"},
            },
            "task_default_queue": "default",
            "task_queues": (
                Queue("default", routing_key="default"),
                Queue("maintenance_queue", routing_key="maintenance"),
            ),
            # Beat schedule for periodic tasks
            "beat_schedule": {
                "reconcile-storage-usage": {
                    "task": "tasks.reconcile_storage_usage",
                    "schedule": self.reconcile_interval_seconds,
                },
                "report-orphaned-objects": {
                    "task": "tasks.report_orphaned_objects",
                    "schedule": self.orphan_report_interval_seconds,
                },
            },
            "task_soft_time_limit": 600,
            "task_time_limit": 900,
            "result_expires": 3600,
        }
        conf.update(self.extra)
        return conf


def make_celery(app, config: CeleryConfig) -> Celery:
    """
    Create Celery instance with Flask app context.

    Args:
        app: Flask application instance
        config: Celery configuration

    Returns:
        Configured Celery instance
    """
    celery = Celery(
        app.import_name,
        backend=config.result_backend,
        broker=config.broker_url,
    )
    celery.conf.update(config.to_celery_conf())

    class ContextTask(celery.Task):
        """Make celery tasks work with Flask app context."""

        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = ContextTask
    return celery
