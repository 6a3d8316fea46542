import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///./salon_booking.db"

# Seconds a SQLite writer waits for the database lock before failing
SQLITE_BUSY_TIMEOUT = 30

# Internal lazy globals
_engine = None
_SessionLocal = None
_database_url = None


def build_engine(database_url: str):
    """Create an engine configured for the backend named in ``database_url``.

    PostgreSQL gets production pooling. SQLite in-memory databases share a
    single connection so DDL persists across sessions; file databases wait
    on the write lock instead of failing immediately.
    """
    try:
        url = make_url(database_url)
        is_postgres = url.drivername.startswith("postgres")
        is_sqlite = url.drivername.startswith("sqlite")
    except Exception:
        # If URL parsing fails, assume a plain backend without special args
        is_postgres = False
        is_sqlite = False

    if is_postgres:
        engine = create_engine(
            database_url,
            pool_size=20,
            max_overflow=40,
            pool_pre_ping=True,  # Detects and refreshes stale connections
            pool_recycle=3600,  # Recycle connections every hour to avoid idle timeouts
            connect_args={
                "application_name": "salon_booking",  # Visible in pg_stat_activity
                "connect_timeout": 10,  # Fail fast on connection issues
            },
            echo=False,
        )
    elif is_sqlite and ":memory:" in str(database_url):
        engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif is_sqlite:
        engine = create_engine(
            database_url,
            echo=False,
            connect_args={
                "check_same_thread": False,
                "timeout": SQLITE_BUSY_TIMEOUT,
            },
        )
    else:
        engine = create_engine(database_url, echo=False)

    logger.debug(
        "SQLAlchemy engine created",
        extra={
            "context": {
                "dialect": getattr(getattr(engine, "dialect", None), "name", "unknown"),
                "url": engine.url.render_as_string(hide_password=True),
            }
        },
    )
    return engine


def get_engine():
    """Return a cached SQLAlchemy engine, creating it from DATABASE_URL on
    first call. This allows tests to set DATABASE_URL before the engine is
    constructed."""
    global _engine
    global _SessionLocal
    global _database_url
    database_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    # If engine not created yet or DATABASE_URL changed, (re)create engine
    if _engine is None or _database_url != database_url:
        if _engine is not None:
            _engine.dispose()
        _engine = build_engine(database_url)
        _SessionLocal = None
        _database_url = database_url
    return _engine


def get_sessionmaker():
    """Return a cached sessionmaker bound to the lazy engine."""
    global _SessionLocal
    engine = get_engine()
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )
    return _SessionLocal


def create_tables(engine=None):
    """Create all tables in database using the lazy engine."""
    # Ensure models are imported so Base.metadata is populated
    from salon_booking.db import base  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())
