"""
Celery Application Instance

Creates the Celery app for workers and the beat scheduler through the app
factory, so tasks resolve services from the same container as the API.

    celery -A cloudvault.celery_app worker -Q default,maintenance_queue
    celery -A cloudvault.celery_app beat
"""

from .app_factory import create_app

flask_app = create_app()

celery_app = flask_app.celery

# Task modules are imported by the worker once celery_app exists
celery_app.conf.imports = (
    "cloudvault.tasks.reconciliation_task",
)
