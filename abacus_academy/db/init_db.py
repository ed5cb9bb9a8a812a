"""Database initialization for the progress snapshot table."""
import logging
from pathlib import Path
from typing import Optional
from sqlalchemy import inspect
from sqlalchemy.engine import Engine, URL
from abacus_academy.db.database import engine as default_engine, Base
from abacus_academy.db import models  # noqa: F401  (registers tables on Base)
from abacus_academy.logging_config import setup_logging

logger = logging.getLogger(__name__)


def ensure_sqlite_directory(url: URL) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    if url.get_backend_name() != "sqlite":
        return
    if not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Initialize database: create the snapshot table if it does not exist.

    Safe to call multiple times - table creation is idempotent.

    Args:
        bind: Engine to initialize (defaults to the configured engine)
    """
    bind = bind or default_engine
    logger.info("Initializing database...")
    ensure_sqlite_directory(bind.url)

    existing_tables = inspect(bind).get_table_names()
    if "snapshots" in existing_tables:
        logger.info("Snapshot table already present.")
    else:
        logger.info("Creating database tables from models...")

    Base.metadata.create_all(bind=bind)
    logger.info("Database initialization complete.")


if __name__ == "__main__":
    setup_logging()
    init_db()
