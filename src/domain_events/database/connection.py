"""Database configuration and connection setup.

The SQLModel engine is created lazily from ``Settings.database_url`` on first
use, so importing the package never requires a configured database.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import Engine
from sqlmodel import Session, SQLModel, create_engine, text
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from domain_events.settings import get_settings

_engine: Engine | None = None


def _engine_options(database_url: str) -> dict[str, Any]:
    """Pool and connect options suitable for the database backend."""
    if database_url.startswith("sqlite"):
        # SQLite pools reject the sizing arguments and know no connect timeout
        return {"connect_args": {"check_same_thread": False}}

    return {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "connect_args": {"connect_timeout": 10},
    }


def _build_engine() -> Engine:
    """Create and return a new engine from current settings.

    Raises:
        ValueError: if database URL not configured.
    """
    settings = get_settings()
    database_url = settings.database_url
    if not database_url:
        raise ValueError("Database URL missing: provide DOMAIN_EVENTS_DATABASE_URL env or --database-url CLI argument")

    engine_local = create_engine(database_url, echo=settings.sql_log, **_engine_options(database_url))
    logger.info("SQL echo is {}", "enabled" if settings.sql_log else "disabled")
    return engine_local


def get_engine() -> Engine:
    """Return a singleton engine instance, creating it lazily."""
    global _engine
    if _engine is None:
        _engine = _build_engine()
    return _engine


def create_tables(engine: Engine | None = None) -> None:
    """Create the audit tables if they do not exist yet."""
    # Registers the table on SQLModel.metadata
    from domain_events.models import AuditEvent  # noqa: F401

    SQLModel.metadata.create_all(engine or get_engine())


def dispose_db() -> None:
    """Dispose of the database engine if it was created."""
    global _engine
    if _engine is not None:
        logger.info("Closing database connections")
        _engine.dispose()
        _engine = None


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
    retry=retry_if_exception_type(Exception),
    before_sleep=before_sleep_log(logger, "DEBUG"),
)
def _create_session(engine: Engine | None = None) -> Session:
    """Create a database session with retry logic.

    When the shared engine is used, a failed connection disposes it so the
    next attempt builds a fresh one. An explicitly passed engine is left alone.

    Raises:
        Exception: If all retry attempts fail
    """
    global _engine
    try:
        session = Session(engine or get_engine())
        # Test the connection immediately
        session.execute(text("SELECT 1"))
        return session
    except Exception as e:
        if engine is None and _engine is not None:
            logger.warning("Database connection failed, disposing engine for retry...")
            _engine.dispose()
            _engine = None
        logger.error("Failed to create database session: {}", e)
        raise


@contextmanager
def borrow_db_session(engine: Engine | None = None) -> Generator[Session]:
    """Context manager for ad-hoc database usage.

    Creates a database session with retry logic and yields it to the caller.
    If the database is not ready, connecting is retried up to 5 times with
    exponential backoff.

    Example:
        with borrow_db_session() as session:
            session.exec(text("SELECT 1"))
    """
    session = _create_session(engine)
    session_id = id(session)

    try:
        yield session
    except Exception as e:  # noqa: BLE001
        logger.error("Error during database session {}: {}", session_id, e)
        raise
    finally:
        session.close()
        logger.trace("Database session {} closed and resources released", session_id)
