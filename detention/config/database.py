"""
Database connection settings for the detention scheduler.
Provides SQLAlchemy engine construction and session management.
"""

import time
from typing import Any, Dict, Generator
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import sessionmaker, Session

from detention.config.settings import settings
from detention.core.logging import get_logger

logger = get_logger(__name__)


def build_engine(database_url: str = None, **overrides: Any) -> Engine:
    """
    Create an engine for the configured store.

    SQLite gets a busy timeout and cross-thread connections; every other
    backend gets the pooled configuration.
    """
    url = database_url or settings.DATABASE_URL
    options: Dict[str, Any] = {"echo": settings.DB_ECHO, "pool_pre_ping": True}

    if url.startswith("sqlite"):
        options["connect_args"] = {
            "timeout": settings.DB_CONNECT_TIMEOUT,
            "check_same_thread": False,
        }
    else:
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_POOL_OVERFLOW,
            pool_recycle=3600,  # Recycle connections after 1 hour
            connect_args={"connect_timeout": settings.DB_CONNECT_TIMEOUT},
        )

    options.update(overrides)
    return create_engine(url, **options)


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=True, expire_on_commit=False, bind=bind)


engine = build_engine()
SessionLocal = build_session_factory(engine)


# Event listeners for performance monitoring
@event.listens_for(Engine, "before_cursor_execute")
def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log query execution time - start timer"""
    conn.info.setdefault('query_start_time', []).append(time.time())


@event.listens_for(Engine, "after_cursor_execute")
def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log query execution time - stop timer and log if slow query"""
    total_time = time.time() - conn.info['query_start_time'].pop()

    if total_time > settings.SLOW_QUERY_SECONDS:
        logger.warning(
            f"Slow query detected ({total_time:.4f}s): {statement[:100]}...",
            extra={"query_seconds": round(total_time, 4)},
        )


def get_db_session() -> Generator[Session, None, None]:
    """Get database session with automatic cleanup"""
    session = SessionLocal()
    try:
        yield session
    except Exception as e:
        logger.error(f"Database session error: {str(e)}")
        session.rollback()
        raise
    finally:
        session.close()


def check_database_connection(bind: Engine = None) -> Dict[str, Any]:
    """Check database connection health"""
    start_time = time.time()
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        is_connected = True
        error_message = None
    except DBAPIError as e:
        is_connected = False
        error_message = str(e)
        logger.warning(f"Database health check failed: {e}")

    return {
        "is_connected": is_connected,
        "response_time_ms": (time.time() - start_time) * 1000,
        "error": error_message,
    }
