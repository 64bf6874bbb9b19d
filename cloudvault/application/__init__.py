"""
Application Services Layer

Orchestrates domain services and coordinates use cases.
"""

from .dependency_container import DependencyContainer, DependencyNotFoundError, build_container
from .event_publisher import EventPublisher
from .rate_limit_service import RateLimitService
from .reconciliation_service import ReconciliationService
from .service_result import ServiceResult
from .share_service import ShareService
from .storage_service import StorageService

__all__ = [
    'DependencyContainer',
    'DependencyNotFoundError',
    'EventPublisher',
    'RateLimitService',
    'ReconciliationService',
    'ServiceResult',
    'ShareService',
    'StorageService',
    'build_container',
]
