"""
Rate Limiting Domain

Fixed-window request counters per client IP.
"""

from .entities import RateLimitEntity
from .repositories import IRateLimitRepository
from .services import RateLimitManager
from .value_objects import ClientIP, RateLimit

__all__ = [
    "ClientIP",
    "IRateLimitRepository",
    "RateLimit",
    "RateLimitEntity",
    "RateLimitManager",
]
