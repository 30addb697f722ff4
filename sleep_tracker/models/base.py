# base.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
import os
import threading

# Module-level cache for engines and sessionmakers, keyed by database URI
# so test and dev databases can live side by side
_engines = {}
_sessionmakers = {}
_engines_lock = threading.Lock()


def get_database_uri():
    """Database URI from DATABASE_URI, defaulting to a SQLite file in the project root"""
    uri = os.environ.get('DATABASE_URI')
    if uri:
        return uri
    db_path = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), 'sleep_tracker.db')
    # Convert to forward slashes for SQLite URI (required on all platforms)
    db_path = db_path.replace('\\', '/')
    return f'sqlite:///{db_path}'


def _is_memory_sqlite(database_uri):
    return database_uri in ('sqlite://', 'sqlite:///:memory:')


def _set_sqlite_pragma(dbapi_conn, connection_record):
    """
    WAL mode and a busy timeout so concurrent request sessions don't trip over
    each other's writes.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")  # 30 second timeout
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def _create_engine(database_uri):
    if _is_memory_sqlite(database_uri):
        # One shared connection, otherwise every checkout sees an empty database
        return create_engine(
            database_uri,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    engine = create_engine(
        database_uri,
        echo=False,
        pool_size=10,          # Maintain 10 connections in pool
        max_overflow=20,       # Allow up to 20 additional connections
        pool_recycle=3600,     # Recycle connections after 1 hour
        pool_pre_ping=True     # Verify connections before using
    )
    if database_uri.startswith('sqlite'):
        event.listen(engine, "connect", _set_sqlite_pragma)
    return engine


def get_engine(database_uri=None):
    """
    Engine for the given URI (or the configured default), created once per URI.

    The engine and its pool are thread-safe and shared; sessions are not, so
    every operation takes its own session from get_session_factory().
    """
    database_uri = database_uri or get_database_uri()
    with _engines_lock:
        if database_uri not in _engines:
            _engines[database_uri] = _create_engine(database_uri)
            # expire_on_commit=False keeps returned records readable after the session closes
            _sessionmakers[database_uri] = sessionmaker(
                bind=_engines[database_uri], expire_on_commit=False
            )
        return _engines[database_uri]


def get_session_factory(database_uri=None):
    """sessionmaker bound to the engine for this URI"""
    database_uri = database_uri or get_database_uri()
    get_engine(database_uri)
    with _engines_lock:
        return _sessionmakers[database_uri]


def dispose_engine(database_uri):
    """Drop a cached engine (used by tests that create throwaway databases)"""
    with _engines_lock:
        engine = _engines.pop(database_uri, None)
        _sessionmakers.pop(database_uri, None)
    if engine is not None:
        engine.dispose()


# Base declarative base (this is safe to create at import time)
Base = declarative_base()
