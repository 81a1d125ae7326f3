"""
Database session management for OV-Ballot.

Provides SQLAlchemy engine and session factory with proper
connection pooling configuration. Uses the settings from config.py.

Usage:
    # As a context manager (recommended for scripts)
    from ovballot.db import get_session

    with get_session() as session:
        seed_event_types(session)
        # Commits automatically on exit, rolls back on exception

    # As a dependency injection (for FastAPI)
    from ovballot.db.session import get_db

    @app.get("/api/event-types")
    def list_event_types(db: Session = Depends(get_db)):
        ...
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from ovballot.config import settings


def get_engine(database_url: str | None = None):
    """
    Create SQLAlchemy engine with connection pooling.

    The engine is configured with:
    - Connection pool for efficient reuse (server databases only)
    - Echo mode disabled (set LOG_LEVEL=DEBUG for SQL logging)
    - Pre-ping to verify connections before use (handles stale connections)
    - Foreign key enforcement switched on for SQLite
    """
    url = database_url or settings.database_url
    is_sqlite = url.startswith("sqlite")

    kwargs = {
        "pool_pre_ping": True,
        "echo": settings.log_level == "DEBUG",
    }
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow

    engine = create_engine(url, **kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def on_connect(dbapi_conn, connection_record):
            """SQLite ships with foreign keys off; cascades rely on them."""
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


# Create the engine (singleton pattern via module-level variable)
_engine = None


def _get_engine():
    """Get or create the singleton engine instance."""
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


# Session factory - creates new sessions bound to our engine
SessionLocal = sessionmaker(
    autocommit=False,  # We'll handle commits explicitly
    autoflush=False,  # Don't auto-flush before queries (more control)
    bind=_get_engine(),
)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.
    This is the recommended way to use sessions in scripts.

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency injection function for FastAPI.

    Route handlers commit explicitly once their writes are complete.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
