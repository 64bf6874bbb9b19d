"""
Configuration

Settings objects and client factories built from environment variables.
"""

from .celery_config import CeleryConfig
from .logging_config import configure_logging
from .rate_limit_config import RateLimitConfig
from .redis_config import RedisConfig
from .settings import Settings

__all__ = [
    "CeleryConfig",
    "RateLimitConfig",
    "RedisConfig",
    "Settings",
    "configure_logging",
]
