from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
import os
from dotenv import load_dotenv
import logging

load_dotenv()
logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./store_ratings.db")

# Connection pooling configuration
# pool_timeout bounds how long a request waits for a connection
engine_kwargs = {
    "pool_pre_ping": True,  # Test connections before using them
    "echo": os.getenv("DB_ECHO", "false").lower() == "true",  # Set to true for SQL debugging
}
if DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {
        "check_same_thread": False,
        "timeout": int(os.getenv("DB_POOL_TIMEOUT", 30)),
    }
else:
    engine_kwargs.update(
        pool_size=int(os.getenv("DB_POOL_SIZE", 5)),  # Number of connections to keep open
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", 10)),  # Max connections beyond pool_size
        pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", 30)),  # Seconds to wait for connection
        pool_recycle=int(os.getenv("DB_POOL_RECYCLE", 3600)),  # Recycle connections after 1 hour
    )

engine = create_engine(DATABASE_URL, **engine_kwargs)


def enable_sqlite_foreign_keys(target_engine: Engine) -> None:
    """SQLite ignores FOREIGN KEY / ON DELETE CASCADE unless asked per connection."""
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)


@event.listens_for(engine, "checkout")
def receive_checkout(dbapi_conn, connection_record, connection_proxy):
    """Log when a connection is checked out from the pool"""
    logger.debug("Connection checked out from pool")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Dependency for FastAPI routes
def get_db():
    """
    Database session dependency for FastAPI.
    One session per request; closed when the request finishes.

    Usage:
        @router.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db here
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
