"""
Redis Configuration

Configures Redis connection settings and provides factory functions
for creating Redis clients.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import redis

logger = logging.getLogger(__name__)


@dataclass
class RedisConfig:
    """Redis configuration settings."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    max_connections: int = 20
    socket_timeout: float = 1.0
    url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "RedisConfig":
        """
        Load configuration from REDIS_* environment variables.

        REDIS_URL (redis://[:password@]host:port/db) wins over the
        individual settings when present.
        """
        config = cls(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", 6379)),
            db=int(os.getenv("REDIS_DB", 0)),
            password=os.getenv("REDIS_PASSWORD") or None,
            max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", 20)),
            socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", 1.0)),
            url=os.getenv("REDIS_URL") or None,
        )
        if config.url:
            connection_params = redis.connection.parse_url(config.url)
            config.host = connection_params.get("host", config.host)
            config.port = connection_params.get("port", config.port)
            config.db = connection_params.get("db", config.db)
            config.password = connection_params.get("password", config.password)
        return config


def create_redis_client(config: RedisConfig) -> redis.Redis:
    """
    Create a pooled Redis client.

    The client connects lazily; an unreachable server surfaces on first use.

    Args:
        config: Redis configuration

    Returns:
        Redis client
    """
    connection_kwargs = {
        "host": config.host,
        "port": config.port,
        "db": config.db,
        "max_connections": config.max_connections,
        "socket_timeout": config.socket_timeout,
        "socket_connect_timeout": config.socket_timeout,
    }
    if config.password:
        connection_kwargs["password"] = config.password

    pool = redis.ConnectionPool(**connection_kwargs)
    return redis.Redis(connection_pool=pool)


def redis_health_check(client: Optional[redis.Redis]) -> bool:
    """
    Check Redis connection health.

    Returns:
        True if Redis answered PING, False otherwise
    """
    if client is None:
        return False
    try:
        return bool(client.ping())
    except redis.RedisError as e:
        logger.warning(f"Redis health check failed: {e}")
        return False
