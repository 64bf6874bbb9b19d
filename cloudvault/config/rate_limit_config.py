"""
Rate Limit Configuration

Environment-based configuration for anonymous share resolution limits.
"""

import os
from dataclasses import dataclass, field
from typing import List


def parse_list(value: str) -> List[str]:
    """
    Parse a comma-separated list.

    Example: "127.0.0.1, 10.0.0.1" -> ["127.0.0.1", "10.0.0.1"]
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class RateLimitConfig:
    """
    Rate limit configuration from environment variables.

    Attributes:
        enabled: Feature flag (RATE_LIMIT_ENABLED)
        share_resolve_per_minute: Burst limit per client IP
        share_resolve_hourly: Hourly limit per client IP
        whitelist: Client IPs that are never limited
    """

    enabled: bool = True
    share_resolve_per_minute: int = 30
    share_resolve_hourly: int = 300
    whitelist: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "RateLimitConfig":
        """
        Load configuration from environment variables.

        Returns:
            RateLimitConfig instance with loaded configuration
        """
        return cls(
            enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true",
            share_resolve_per_minute=int(os.getenv("SHARE_RESOLVE_PER_MINUTE", "30")),
            share_resolve_hourly=int(os.getenv("SHARE_RESOLVE_HOURLY", "300")),
            whitelist=parse_list(os.getenv("RATE_LIMIT_WHITELIST", "")),
        )

    def should_enforce(self) -> bool:
        return self.enabled
