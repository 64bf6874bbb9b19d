"""
Blob Store Factory

Selects the IBlobStore implementation from settings so the application
layer depends only on the interface.
"""

import logging

from ..config.settings import Settings
from ..domain.clock import Clock, utcnow
from ..domain.file_storage.blob_store import IBlobStore
from .local_blob_store import LocalBlobStore
from .url_signer import UrlSigner

logger = logging.getLogger(__name__)


class BlobStoreFactory:
    """
    Factory for blob store implementations.

    Selection Logic:
    - storage_backend "gcs": one GCS bucket per owner, v4 signed URLs
    - storage_backend "local": directories under local_storage_dir, URLs
      signed with secret_key and served by /api/v1/blobs

    There is no fallback between backends: namespaces bound in the
    metadata store only exist on the backend that created them.
    """

    @staticmethod
    def create_blob_store(settings: Settings, clock: Clock = utcnow) -> IBlobStore:
        """
        Create the blob store for the configured backend.

        Args:
            settings: Service settings
            clock: Source of the current time

        Returns:
            IBlobStore implementation

        Raises:
            ValueError: For an unknown backend or missing GCS configuration
        """
        backend = (settings.storage_backend or "local").lower()
        if backend == "gcs":
            return BlobStoreFactory._create_gcs_store(settings, clock)
        if backend == "local":
            return BlobStoreFactory._create_local_store(settings, clock)
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")

    @staticmethod
    def _create_local_store(settings: Settings, clock: Clock) -> LocalBlobStore:
        signer = UrlSigner(settings.secret_key, settings.public_base_url)
        store = LocalBlobStore(settings.local_storage_dir, signer, clock=clock)
        logger.info(f"Blob store: local filesystem at {store.base_path}")
        return store

    @staticmethod
    def _create_gcs_store(settings: Settings, clock: Clock) -> IBlobStore:
        if not settings.gcs_project:
            raise ValueError("GCS_PROJECT is required for the gcs storage backend")

        from ..config.gcs_config import create_gcs_client
        from .gcs_blob_store import GCSBlobStore

        client = create_gcs_client(settings.gcs_project, settings.google_credentials_path)
        logger.info(
            f"Blob store: GCS project {settings.gcs_project}, "
            f"buckets in {settings.gcs_location}"
        )
        return GCSBlobStore(client, location=settings.gcs_location, clock=clock)
