"""
Database Setup

SQLAlchemy engine and session factory for the metadata catalog.
"""

import logging
import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()

# Connection execution option marking a transaction that will write
WRITE_LOCK_OPTION = "cloudvault_write_lock"


def _enable_sqlite_write_locking(engine: Engine) -> None:
    """
    Make SQLite write transactions take the write lock up front.

    pysqlite defers BEGIN until the first write, which lets two
    transactions read the same ledger row before either writes it.
    Transactions opened through write_transaction start with
    BEGIN IMMEDIATE, which serializes writers the way row locks do on
    server databases. Read-only sessions start a deferred BEGIN and keep
    reading while a writer holds the lock.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        if conn.get_execution_options().get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


@contextmanager
def write_transaction(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Open a session for a transaction that writes.

    Commits on success and rolls back on error, like
    ``sessionmaker.begin()``. On SQLite the transaction holds the database
    write lock from its first statement.
    """
    with session_factory.begin() as session:
        session.connection(execution_options={WRITE_LOCK_OPTION: True})
        yield session


def create_database_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the catalog engine.

    Args:
        database_url: SQLAlchemy URL (sqlite:///..., postgresql+psycopg2://...)
        echo: Log emitted SQL

    Returns:
        Engine
    """
    if database_url.startswith("sqlite"):
        path = database_url.split(":///", 1)[-1] if ":///" in database_url else ""
        if path and path != ":memory:":
            directory = os.path.dirname(os.path.abspath(path))
            os.makedirs(directory, exist_ok=True)
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        _enable_sqlite_write_locking(engine)
    else:
        engine = create_engine(database_url, echo=echo, pool_pre_ping=True)

    logger.debug(f"Created database engine for dialect {engine.dialect.name}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


def init_db(engine: Engine) -> None:
    """Create all catalog tables that do not exist yet."""
    from . import sql_models  # noqa: F401  (registers the mapped classes)

    Base.metadata.create_all(engine)
