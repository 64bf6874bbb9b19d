"""
Google Cloud Storage Configuration

Builds the GCS client from settings.
"""

import logging
import os
from typing import Optional

from google.cloud import storage
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


def create_gcs_client(project: Optional[str], credentials_path: Optional[str] = None) -> storage.Client:
    """
    Create a Google Cloud Storage client.

    A service account key file is used when given; otherwise application
    default credentials apply (GCE/GKE metadata server, gcloud login).
    Signing v4 URLs requires credentials that can sign, i.e. a service
    account key or a service account with the token creator role.

    Args:
        project: GCP project that owns the per-owner buckets
        credentials_path: Optional service account JSON key path

    Returns:
        storage.Client
    """
    if credentials_path and os.path.exists(credentials_path):
        credentials = service_account.Credentials.from_service_account_file(credentials_path)
        logger.info(f"GCS client initialized with service account: {credentials_path}")
        return storage.Client(project=project, credentials=credentials)

    logger.info("GCS client initialized with default credentials")
    return storage.Client(project=project)
