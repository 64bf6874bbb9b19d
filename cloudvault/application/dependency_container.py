"""
Dependency Injection Container

Manages service lifecycles and wires the object graph from Settings.
"""

import logging
import threading
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from ..config.settings import Settings
from ..domain.clock import Clock, utcnow
from ..domain.events import DomainEvent
from ..domain.file_storage import (
    BucketBindingRepository,
    BucketProvisioner,
    FileCatalog,
    FileOrganizer,
    FolderRepository,
    IBlobStore,
    QuotaPolicy,
    QuotaPolicyResolver,
    StorageTier,
    TransferCoordinator,
)
from ..domain.rate_limiting import IRateLimitRepository, RateLimitManager
from ..domain.retry import RetryPolicy
from ..domain.sharing import ShareLinkIssuer, ShareLinkRepository
from .event_publisher import EventPublisher
from .rate_limit_service import RateLimitService
from .reconciliation_service import ReconciliationService
from .share_service import ShareService
from .storage_service import StorageService

logger = logging.getLogger(__name__)

T = TypeVar('T')


class DependencyNotFoundError(Exception):
    """Raised when attempting to resolve an unregistered dependency."""
    pass


class DependencyContainer:
    """
    Dependency injection container for managing service lifecycles.

    Supports singleton (single instance) and transient (factory-created)
    registration patterns. Thread-safe for concurrent access.
    """

    def __init__(self):
        self._singletons: Dict[Type, Any] = {}
        self._transients: Dict[Type, Callable[[], Any]] = {}
        self._overrides: Dict[Type, Any] = {}
        self._lock = threading.Lock()

    def register_singleton(self, interface: Type[T], implementation: T) -> None:
        """
        Register a singleton service (single instance shared across all resolutions).

        Args:
            interface: The interface or class type to register
            implementation: The concrete instance to use
        """
        with self._lock:
            self._singletons[interface] = implementation
        logger.debug(f"Registered singleton: {interface.__name__}")

    def register_transient(self, interface: Type[T], factory: Callable[[], T]) -> None:
        """
        Register a transient service (new instance created on each resolution).

        Args:
            interface: The interface or class type to register
            factory: A callable that creates new instances
        """
        with self._lock:
            self._transients[interface] = factory
        logger.debug(f"Registered transient: {interface.__name__}")

    def resolve(self, interface: Type[T]) -> T:
        """
        Resolve a registered service.

        Raises:
            DependencyNotFoundError: If the interface is not registered
        """
        with self._lock:
            if interface in self._overrides:
                return self._overrides[interface]
            if interface in self._singletons:
                return self._singletons[interface]
            factory = self._transients.get(interface)

        if factory is None:
            raise DependencyNotFoundError(
                f"No registration found for type: {interface.__name__}"
            )
        # Called outside the lock so factories can resolve other dependencies
        return factory()

    def override(self, interface: Type[T], implementation: T) -> None:
        """
        Override a registered service (primarily for testing).

        Overrides take precedence over both singleton and transient registrations.
        """
        with self._lock:
            self._overrides[interface] = implementation
        logger.debug(f"Overridden: {interface.__name__}")

    def clear_overrides(self) -> None:
        with self._lock:
            self._overrides.clear()

    def is_registered(self, interface: Type) -> bool:
        with self._lock:
            return (
                interface in self._singletons or
                interface in self._transients or
                interface in self._overrides
            )

    def setup_event_handlers(
        self, event_publisher: EventPublisher, event_handler_classes: Optional[List[Type]] = None
    ) -> None:
        """
        Subscribe infrastructure event handlers to the event publisher.

        Args:
            event_publisher: EventPublisher to subscribe handlers to
            event_handler_classes: Handler classes to instantiate; defaults
                to LoggingEventHandler
        """
        from ..infrastructure.event_handlers.logging_handler import LoggingEventHandler

        if event_handler_classes is None:
            event_handler_classes = [LoggingEventHandler]

        for handler_class in event_handler_classes:
            if handler_class is LoggingEventHandler:
                handler = handler_class(logging.getLogger("cloudvault.events"))
            else:
                handler = handler_class()
            event_publisher.subscribe(DomainEvent, handler.handle)
            logger.debug(f"Registered event handler: {handler_class.__name__}")


def build_container(
    settings: Settings,
    blob_store: Optional[IBlobStore] = None,
    rate_limit_repository: Optional[IRateLimitRepository] = None,
    clock: Clock = utcnow,
    sleep: Optional[Callable[[float], None]] = None,
) -> DependencyContainer:
    """
    Build the full object graph for one process.

    Args:
        settings: Service settings
        blob_store: Blob store to use instead of the configured backend
        rate_limit_repository: Counter store to use instead of Redis
        clock: Source of the current time for every component
        sleep: Wait function for retries (tests pass a no-op)

    Returns:
        Container with every service registered as a singleton
    """
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import sessionmaker

    from ..infrastructure.blob_store_factory import BlobStoreFactory
    from ..infrastructure.database import create_database_engine, create_session_factory, init_db
    from ..infrastructure.sql_catalog import (
        SqlBucketBindingRepository,
        SqlFileCatalog,
        SqlFolderRepository,
    )
    from ..infrastructure.sql_share_repository import SqlShareLinkRepository

    container = DependencyContainer()
    container.register_singleton(Settings, settings)

    publisher = EventPublisher()
    container.setup_event_handlers(publisher)
    container.register_singleton(EventPublisher, publisher)

    engine = create_database_engine(settings.database_url)
    init_db(engine)
    session_factory = create_session_factory(engine)
    container.register_singleton(Engine, engine)
    container.register_singleton(sessionmaker, session_factory)

    catalog = SqlFileCatalog(session_factory, clock=clock)
    folders = SqlFolderRepository(session_factory)
    bindings = SqlBucketBindingRepository(session_factory)
    shares = SqlShareLinkRepository(session_factory)
    container.register_singleton(FileCatalog, catalog)
    container.register_singleton(FolderRepository, folders)
    container.register_singleton(BucketBindingRepository, bindings)
    container.register_singleton(ShareLinkRepository, shares)

    if blob_store is None:
        blob_store = BlobStoreFactory.create_blob_store(settings, clock=clock)
    container.register_singleton(IBlobStore, blob_store)

    retry_policy = RetryPolicy(
        max_attempts=settings.backend_retry_max_attempts,
        initial_delay=settings.backend_retry_initial_delay,
        max_delay=settings.backend_retry_max_delay,
    )
    if sleep is not None:
        retry_policy = retry_policy.with_sleep(sleep)
    container.register_singleton(RetryPolicy, retry_policy)

    quota_resolver = QuotaPolicyResolver(
        free=QuotaPolicy(
            StorageTier.FREE,
            settings.free_tier_max_total_bytes,
            settings.free_tier_max_file_bytes,
        ),
        premium=QuotaPolicy(
            StorageTier.PREMIUM,
            settings.premium_tier_max_total_bytes,
            settings.premium_tier_max_file_bytes,
        ),
        premium_owner_ids=settings.premium_owner_ids,
    )
    container.register_singleton(QuotaPolicyResolver, quota_resolver)

    provisioner = BucketProvisioner(
        blob_store,
        bindings,
        retry_policy,
        namespace_prefix=settings.gcs_bucket_prefix,
        clock=clock,
        publish=publisher.publish,
    )
    upload_ttl = timedelta(seconds=settings.upload_url_ttl_seconds)
    coordinator = TransferCoordinator(
        blob_store,
        catalog,
        provisioner,
        quota_resolver,
        retry_policy,
        upload_ttl=upload_ttl,
        download_ttl=timedelta(seconds=settings.download_url_ttl_seconds),
        folders=folders,
        clock=clock,
        publish=publisher.publish,
    )
    organizer = FileOrganizer(coordinator, catalog, folders, clock=clock)
    issuer = ShareLinkIssuer(shares, catalog, clock=clock, publish=publisher.publish)
    container.register_singleton(BucketProvisioner, provisioner)
    container.register_singleton(TransferCoordinator, coordinator)
    container.register_singleton(FileOrganizer, organizer)
    container.register_singleton(ShareLinkIssuer, issuer)

    container.register_singleton(StorageService, StorageService(coordinator, organizer))
    container.register_singleton(ShareService, ShareService(issuer, coordinator, clock=clock))
    container.register_singleton(ReconciliationService, ReconciliationService(
        coordinator,
        catalog,
        bindings,
        orphan_age=upload_ttl + timedelta(seconds=settings.orphan_grace_seconds),
        clock=clock,
    ))

    if rate_limit_repository is None:
        import redis

        from ..config.redis_config import create_redis_client
        from ..infrastructure.redis_rate_limit_repository import RedisRateLimitRepository

        redis_client = create_redis_client(settings.redis)
        container.register_singleton(redis.Redis, redis_client)
        rate_limit_repository = RedisRateLimitRepository(redis_client, clock=clock)
    container.register_singleton(IRateLimitRepository, rate_limit_repository)
    container.register_singleton(RateLimitService, RateLimitService(
        RateLimitManager(rate_limit_repository, clock=clock),
        settings.rate_limit,
    ))

    logger.info(
        f"Services wired: storage backend={settings.storage_backend}, "
        f"database={engine.url.render_as_string(hide_password=True)}"
    )
    return container
