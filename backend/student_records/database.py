"""
Database connection and session management module.

Uses SQLAlchemy for all storage access. The engine (and its connection
pool) is built lazily on first use from the resolved credentials and is
shared by every request in the process. DATABASE_URL, when set, overrides
the credential provider entirely (used for SQLite local development and
tests).
"""

import os
import threading
from urllib.parse import quote_plus

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from student_records.credentials import Credentials, resolve_credentials
from student_records.errors import ConfigurationError, DatabaseConnectionError
from student_records.logging_config import get_logger, log_with_context

logger = get_logger("db")

POOL_SIZE = 10
CONNECT_TIMEOUT_SECONDS = 3

_engine = None
_session_factory = None
_lock = threading.Lock()


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def credentials_url(credentials: Credentials) -> str:
    """Build a MySQL (PyMySQL driver) URL from resolved credentials."""
    return (
        f"mysql+pymysql://{quote_plus(credentials.username)}:{quote_plus(credentials.password)}"
        f"@{credentials.host}:{credentials.port}/{credentials.database}?charset=utf8mb4"
    )


def database_url() -> str:
    """
    Return the SQLAlchemy URL to connect to.

    DATABASE_URL wins when present; otherwise the URL is derived from the
    credential provider.
    """
    override = os.getenv("DATABASE_URL")
    if override:
        return override
    return credentials_url(resolve_credentials())


def engine_options(url: str) -> dict:
    """
    Engine kwargs for the given database URL.

    Server databases get a fixed pool of 10 connections with no overflow.
    Waiters block for at most DB_POOL_TIMEOUT seconds before failing.
    SQLite does not support pool_size, max_overflow or connect timeouts.
    """
    engine_kwargs = {"echo": False}

    if url.startswith("sqlite"):
        # SQLite needs check_same_thread=False for FastAPI's threadpool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        return engine_kwargs

    engine_kwargs.update({
        "pool_size": POOL_SIZE,
        "max_overflow": 0,
        "pool_timeout": float(os.getenv("DB_POOL_TIMEOUT", "30")),
        "pool_pre_ping": True,
    })
    if url.startswith(("mysql", "postgresql")):
        engine_kwargs["connect_args"] = {"connect_timeout": CONNECT_TIMEOUT_SECONDS}
    return engine_kwargs


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def get_engine() -> Engine:
    """
    Return the process-wide engine, building it on first call.

    Repeated calls return the same engine (and therefore the same pool)
    until dispose_engine() is called.

    Raises:
        DatabaseConnectionError: if credentials cannot be resolved or the
            engine cannot be constructed
    """
    global _engine, _session_factory
    if _engine is not None:
        return _engine
    with _lock:
        if _engine is not None:
            return _engine
        try:
            url = database_url()
            engine = create_engine(url, **engine_options(url))
        except ConfigurationError as e:
            log_with_context(logger, "ERROR", f"Credential resolution failed: {e}")
            raise DatabaseConnectionError(f"Could not resolve database credentials: {e}") from e
        except (SQLAlchemyError, ImportError, ValueError) as e:
            log_with_context(logger, "ERROR", f"Failed to create database engine: {e}")
            raise DatabaseConnectionError(f"Could not create database engine: {e}") from e

        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _set_sqlite_pragma)

        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        _engine = engine
        log_with_context(logger, "INFO", "Database engine initialized",
                         extra_data={"dialect": engine.dialect.name,
                                     "database": engine.url.database})
    return _engine


def dispose_engine() -> None:
    """
    Close every pooled connection and forget the engine.

    Safe to call when no engine has been built.
    """
    global _engine, _session_factory
    with _lock:
        if _engine is None:
            return
        _engine.dispose()
        _engine = None
        _session_factory = None
    log_with_context(logger, "INFO", "Database engine disposed")


def get_session_factory() -> sessionmaker:
    get_engine()
    return _session_factory


def get_db():
    """
    FastAPI dependency that provides a database session.

    Yields a session and ensures it is closed after the request, returning
    its connection to the pool even when the handler raises.
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """
    Create the students table if it does not exist.

    There is no migration system; this is used for SQLite local development,
    tests, and the setup_database.py script.
    """
    # Register models with Base.metadata
    from student_records.models import student  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
