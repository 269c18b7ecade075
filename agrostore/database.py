"""
Database configuration and connection management.

Engine and session factory are built from ``settings.DATABASE_URL``;
SQLite (the default local store) and PostgreSQL are both supported.
"""

import os
import time
from pathlib import Path
from typing import Generator

import structlog
from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import settings
from .models import Base

# Load environment variables
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)

logger = structlog.get_logger(__name__)

QUERY_LOGGING_THRESHOLD_MS = int(os.getenv("QUERY_LOG_THRESHOLD_MS", "100"))
POOL_PRE_PING = os.getenv("DB_POOL_PRE_PING", "true").lower() == "true"


def get_database_url() -> str:
    """
    Get database URL from settings.

    Returns:
        Database connection URL
    """
    db_url = settings.DATABASE_URL

    # Sanitize for logging
    if "@" in db_url:
        safe_url = db_url.split("@")[0] + "@..."
    else:
        safe_url = db_url

    logger.info("Using database", url=safe_url)
    return db_url


def get_connect_args(db_url: str) -> dict:
    """
    Get database-specific connection arguments.

    Args:
        db_url: Database connection URL

    Returns:
        Connection arguments dict
    """
    if "sqlite" in db_url:
        return {"check_same_thread": False}
    return {}


@event.listens_for(Engine, "before_cursor_execute")
def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Track query start time."""
    conn.info.setdefault("query_start_time", []).append(time.time())


@event.listens_for(Engine, "after_cursor_execute")
def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log slow queries."""
    total_time_ms = (time.time() - conn.info["query_start_time"].pop()) * 1000

    if total_time_ms > QUERY_LOGGING_THRESHOLD_MS:
        logger.warning(
            "Slow query detected",
            query_time_ms=round(total_time_ms, 2),
            statement=statement[:200],
        )


db_url = get_database_url()

engine = create_engine(
    db_url,
    connect_args=get_connect_args(db_url),
    pool_pre_ping=POOL_PRE_PING,
    echo=False,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """
    Initialize database tables.

    Creates all tables on application startup.
    Uses checkfirst=True to safely handle existing tables.
    """
    logger.info("Initializing database tables")
    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Database initialized")


def get_db() -> Generator[Session, None, None]:
    """
    Get database session for dependency injection.

    Yields:
        SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
