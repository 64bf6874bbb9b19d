"""
Application Settings

Environment-driven settings built once at process start and passed
explicitly to every component.
"""

import os
import secrets
from dataclasses import dataclass, field
from typing import List, Optional

from .celery_config import CeleryConfig
from .rate_limit_config import RateLimitConfig, parse_list
from .redis_config import RedisConfig

MIB = 1024 * 1024
GIB = 1024 * MIB


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


@dataclass
class Settings:
    """
    Service configuration.

    Every field has a development default so the service can start with
    nothing but a writable /tmp.
    """

    database_url: str = "sqlite:////tmp/cloudvault/cloudvault.db"
    storage_backend: str = "local"
    gcs_project: Optional[str] = None
    gcs_bucket_prefix: str = "cloudvault-user"
    gcs_location: str = "US"
    google_credentials_path: Optional[str] = None
    local_storage_dir: str = "/tmp/cloudvault/blobs"
    secret_key: str = field(default_factory=lambda: secrets.token_hex(32))
    public_base_url: str = ""
    upload_url_ttl_seconds: int = 300
    download_url_ttl_seconds: int = 300

    free_tier_max_total_bytes: int = 250 * MIB
    free_tier_max_file_bytes: int = 50 * MIB
    premium_tier_max_total_bytes: int = 10 * GIB
    premium_tier_max_file_bytes: int = 5 * GIB
    premium_owner_ids: List[str] = field(default_factory=list)

    backend_retry_max_attempts: int = 3
    backend_retry_initial_delay: float = 0.2
    backend_retry_max_delay: float = 5.0

    orphan_grace_seconds: int = 3600
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    redis: RedisConfig = field(default_factory=RedisConfig)
    celery: CeleryConfig = field(default_factory=CeleryConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Load settings from environment variables.

        STORAGE_BACKEND defaults to "gcs" when GCS_PROJECT is set and to
        "local" otherwise.

        Returns:
            Settings instance
        """
        gcs_project = os.getenv("GCS_PROJECT") or None
        storage_backend = os.getenv("STORAGE_BACKEND") or ("gcs" if gcs_project else "local")

        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            storage_backend=storage_backend.lower(),
            gcs_project=gcs_project,
            gcs_bucket_prefix=os.getenv("GCS_BUCKET_PREFIX", cls.gcs_bucket_prefix),
            gcs_location=os.getenv("GCS_LOCATION", cls.gcs_location),
            google_credentials_path=os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or None,
            local_storage_dir=os.getenv("LOCAL_STORAGE_DIR", cls.local_storage_dir),
            secret_key=os.getenv("SECRET_KEY") or secrets.token_hex(32),
            public_base_url=os.getenv("PUBLIC_BASE_URL", "").rstrip("/"),
            upload_url_ttl_seconds=_env_int("UPLOAD_URL_TTL_SECONDS", 300),
            download_url_ttl_seconds=_env_int("DOWNLOAD_URL_TTL_SECONDS", 300),
            free_tier_max_total_bytes=_env_int("FREE_TIER_MAX_TOTAL_BYTES", 250 * MIB),
            free_tier_max_file_bytes=_env_int("FREE_TIER_MAX_FILE_BYTES", 50 * MIB),
            premium_tier_max_total_bytes=_env_int("PREMIUM_TIER_MAX_TOTAL_BYTES", 10 * GIB),
            premium_tier_max_file_bytes=_env_int("PREMIUM_TIER_MAX_FILE_BYTES", 5 * GIB),
            premium_owner_ids=parse_list(os.getenv("PREMIUM_OWNER_IDS", "")),
            backend_retry_max_attempts=_env_int("BACKEND_RETRY_MAX_ATTEMPTS", 3),
            backend_retry_initial_delay=_env_float("BACKEND_RETRY_INITIAL_DELAY", 0.2),
            backend_retry_max_delay=_env_float("BACKEND_RETRY_MAX_DELAY", 5.0),
            orphan_grace_seconds=_env_int("ORPHAN_GRACE_SECONDS", 3600),
            cors_origins=parse_list(os.getenv("CORS_ORIGINS", "*")) or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            redis=RedisConfig.from_env(),
            celery=CeleryConfig.from_env(),
            rate_limit=RateLimitConfig.from_env(),
        )
