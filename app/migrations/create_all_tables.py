"""
Migration script to create all database tables

Run this script to create all database tables:
    python -m app.migrations.create_all_tables

The API also does this on startup unless CREATE_TABLES_ON_STARTUP=false.
"""

import logging

from app.database import engine, Base
# Import all models to ensure they're registered with Base
from app.models import User, Store, Rating  # noqa: F401

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger(__name__)


def create_tables():
    """Create all database tables"""
    logger.info("Creating all database tables...")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("Error creating tables")
        raise
    logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    create_tables()
