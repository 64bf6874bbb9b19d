import os

import pytest
import redis

from cloudvault.infrastructure.database import (
    create_database_engine,
    create_session_factory,
    init_db,
)


@pytest.fixture
def session_factory(tmp_path):
    """
    Session factory on a fresh file-backed SQLite catalog.

    A file (not :memory:) so that every thread gets its own connection
    and the write locking is exercised for real.
    """
    engine = create_database_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def redis_client():
    """
    Yields a clean Redis client for integration testing.
    Skips when no Redis server is reachable.
    """
    host = os.getenv("REDIS_HOST", "localhost")
    port = int(os.getenv("REDIS_PORT", 6379))
    db = int(os.getenv("REDIS_DB", 15))

    client = redis.Redis(host=host, port=port, db=db, socket_connect_timeout=0.5)

    try:
        client.ping()
    except redis.RedisError:
        pytest.skip("Redis service not available. Skipping integration tests.")

    for key in client.scan_iter(match="ratelimit:*"):
        client.delete(key)

    yield client

    for key in client.scan_iter(match="ratelimit:*"):
        client.delete(key)
    client.close()
