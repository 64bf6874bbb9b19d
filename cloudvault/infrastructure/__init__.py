"""Infrastructure layer: relational metadata store, blob backends and Redis."""

from .blob_store_factory import BlobStoreFactory
from .database import Base, create_database_engine, create_session_factory, init_db
from .local_blob_store import BlobExistsError, BlobTooLargeError, LocalBlobStore
from .redis_rate_limit_repository import RedisRateLimitRepository
from .sql_catalog import SqlBucketBindingRepository, SqlFileCatalog, SqlFolderRepository
from .sql_share_repository import SqlShareLinkRepository
from .url_signer import UrlSigner

__all__ = [
    'Base',
    'BlobExistsError',
    'BlobStoreFactory',
    'BlobTooLargeError',
    'LocalBlobStore',
    'RedisRateLimitRepository',
    'SqlBucketBindingRepository',
    'SqlFileCatalog',
    'SqlFolderRepository',
    'SqlShareLinkRepository',
    'UrlSigner',
    'create_database_engine',
    'create_session_factory',
    'init_db',
]
