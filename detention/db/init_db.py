"""Database initialization utilities."""
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from detention.config.database import engine
from detention.core.logging import get_logger
from detention.models import Base

logger = get_logger(__name__)


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Create any missing tables.

    Note: This is suitable for development/testing only.
    For production, manage the schema with migrations.
    """
    bind = bind or engine
    try:
        existing_tables = set(inspect(bind).get_table_names())
        missing = [t for t in Base.metadata.sorted_tables if t.name not in existing_tables]
        if not missing:
            logger.info(f"Database already initialized with {len(existing_tables)} tables")
            return
        Base.metadata.create_all(bind=bind, tables=missing)
        logger.info(f"Created {len(missing)} database table(s)")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise
