"""Database configuration for the Dispatch backend."""
from typing import Generator
import logging

from sqlmodel import create_engine, Session
from sqlalchemy import event
from sqlalchemy.engine import Engine

from dispatch_app.config import DATABASE_URL, IS_SQLITE

logger = logging.getLogger(__name__)


def enable_sqlite_pragmas(engine: Engine) -> None:
    """Enforce foreign keys on every new SQLite connection."""

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str = DATABASE_URL, **kwargs) -> Engine:
    """Create an engine, applying SQLite-specific settings where needed."""
    is_sqlite = database_url.startswith("sqlite")
    # SQLite connections are shared across FastAPI's worker threads
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    engine = create_engine(database_url, echo=False, connect_args=connect_args, **kwargs)
    if is_sqlite:
        enable_sqlite_pragmas(engine)
    return engine


if IS_SQLITE:
    logger.info(f"Using SQLite database: {DATABASE_URL}")
else:
    logger.info("Using server database")

engine = build_engine()


def get_session() -> Generator[Session, None, None]:
    """Dependency for getting database sessions."""
    with Session(engine) as session:
        yield session
