"""Database configuration and session management for SQLite.

This module configures the SQLite database engine with settings optimized
for a web application: WAL mode for concurrent access and foreign key
enforcement for data integrity.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: Allows concurrent readers while writing.
      Listing requests keep reading while a series split or the reminder
      job writes.

    - **Foreign Keys**: SQLite has foreign key support but it's disabled by
      default for backwards compatibility. Deleting a series root relies on
      ``ON DELETE CASCADE`` to remove its guests, reminders, split
      continuations and materialised occurrences, so the pragma is required.

    - **check_same_thread=False**: Required for FastAPI/async. SQLite's default
      prevents connections from being used across threads, but FastAPI's
      dependency injection may pass sessions between threads.
"""

from sqlalchemy import event as sa_event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from planner.core.config import settings


def set_sqlite_pragma(dbapi_connection, connection_record):
    """Configure SQLite pragmas on each new connection.

    These settings are connection-level, not database-level, so they must
    be set each time a new connection is established from the pool.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    # Cascading deletes of a series depend on this.
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine with the SQLite pragmas attached."""
    connect_args = kwargs.pop("connect_args", {"check_same_thread": False})
    engine = create_engine(url, connect_args=connect_args, **kwargs)
    sa_event.listen(engine, "connect", set_sqlite_pragma)
    return engine


engine = build_engine(
    settings.database_url,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


def create_db_and_tables():
    """Create all database tables."""
    # Import for side effects: registers the tables on SQLModel.metadata
    import planner.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
