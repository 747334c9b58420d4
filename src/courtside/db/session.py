"""
Database session management for Courtside.

Provides the SQLAlchemy engine and session factory, configured from
config.py.

Usage:
    # As a context manager (recommended for scripts)
    from courtside.db import get_session

    with get_session() as session:
        service = MatchResultService(session)
        service.complete_match(match_id, sets)
        # Commits automatically on exit, rolls back on exception
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from courtside.config import settings


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    The engine is configured with:
    - Connection pool sized from settings (server databases only; SQLite
      uses SQLAlchemy's default pool for its file or memory database)
    - Echo mode disabled (set LOG_LEVEL=DEBUG for SQL logging)
    - Pre-ping to verify connections before use (handles stale connections)
    """
    url = make_url(database_url or settings.database_url)

    kwargs = {
        "pool_pre_ping": True,  # Verify connection is alive before using
        "echo": settings.log_level == "DEBUG",  # Log SQL only in debug mode
    }
    if url.get_backend_name() != "sqlite":
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow

    return create_engine(url, **kwargs)


# Create the engine lazily (singleton pattern via module-level variable)
_engine = None


def _get_engine() -> Engine:
    """Get or create the singleton engine instance."""
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


# Session factory - bound to the engine on first use
SessionLocal = sessionmaker(
    autocommit=False,  # We'll handle commits explicitly
    autoflush=False,  # Don't auto-flush before queries (more control)
)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.
    A ConcurrentUpdateError raised inside the block therefore discards
    every write of that transaction.

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = SessionLocal(bind=_get_engine())
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
