"""Engine and session setup."""

import os
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from .config import DATABASE_URL
from .models import Base

SQLITE_BUSY_TIMEOUT_SEC = 30

# Execution option marking connections that take the SQLite write lock at BEGIN
WRITE_LOCK_OPTION = "roadhazard_write_lock"


def _enable_sqlite_write_locking(engine: Engine) -> None:
    """
    Emit BEGIN ourselves, IMMEDIATE for write-locked connections.

    pysqlite defers BEGIN until the first write, so two connections can both
    read "no match" before either inserts. BEGIN IMMEDIATE takes the database
    write lock when the transaction opens, which serialises match-then-mutate
    units across threads and processes. Connections without the
    ``WRITE_LOCK_OPTION`` get a plain deferred BEGIN and never block readers.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        if conn.get_execution_options().get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_db_engine(url: str = DATABASE_URL) -> Engine:
    """Create an engine for the given URL (SQLite or PostgreSQL)."""
    parsed = make_url(url)

    if parsed.get_backend_name() == "sqlite":
        if parsed.database and parsed.database != ":memory:":
            directory = os.path.dirname(parsed.database)
            if directory:
                os.makedirs(directory, exist_ok=True)
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SEC},
        )
        _enable_sqlite_write_locking(engine)
        return engine

    return create_engine(url, pool_pre_ping=True)


def make_session_factory(engine: Engine, write_lock: bool = False) -> sessionmaker:
    """
    Sessions for reads, or with ``write_lock`` for match-then-mutate units
    (SQLite then opens their transactions with BEGIN IMMEDIATE).
    """
    bind = engine.execution_options(**{WRITE_LOCK_OPTION: True}) if write_lock else engine
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create tables if they do not exist yet."""
    Base.metadata.create_all(bind=engine)


def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """Yield a session and always close it (FastAPI dependency style)."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
