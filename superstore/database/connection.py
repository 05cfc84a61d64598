"""
Database Connection Management

Synchronous SQLAlchemy 2.0 engine and session handling for the batch sink.
SQLite connections get foreign-key enforcement switched on.
"""

from contextlib import contextmanager
from typing import Generator, Optional

import structlog
from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker

from superstore.config import get_settings

logger = structlog.get_logger(__name__)

# Global engine and session factory
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_database(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Initialize the database engine.

    Args:
        url: SQLAlchemy URL, defaults to DATABASE_URL
        echo: Echo SQL statements, defaults to DATABASE_ECHO

    Returns:
        Engine: The initialized database engine
    """
    global _engine, _session_factory

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    settings = get_settings()
    url = url or settings.database.url

    _engine = create_engine(
        url,
        echo=settings.database.echo if echo is None else echo,
        pool_pre_ping=True,
    )
    if _engine.dialect.name == "sqlite":
        event.listen(_engine, "connect", _enable_sqlite_foreign_keys)

    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False, autoflush=False)

    # Verify connection
    try:
        with _engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection established", dialect=_engine.dialect.name)
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    return _engine


def close_database() -> None:
    """Dispose of the engine and its pooled connections."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connection pool closed")


def get_engine() -> Engine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """
    Get a database session.

    Commits on success, rolls back and re-raises on error.

    Example:
        with get_db() as db:
            db.execute(query)
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        session.rollback()
        raise
    finally:
        session.close()
