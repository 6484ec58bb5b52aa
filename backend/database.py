"""
FleetRent - Database Connection
SQLAlchemy 2.0 database setup
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Generator

from shared.config import settings, ensure_directories
from shared.errors import FleetError
from loguru import logger


# Create base class for models
Base = declarative_base()

# In-memory SQLite must share one connection or every session sees an empty database
_engine_options = {}
if settings.is_in_memory:
    _engine_options["poolclass"] = StaticPool

# Create engine
engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,  # Verify connections before using
    connect_args={"check_same_thread": False} if settings.is_sqlite else {},
    **_engine_options,
)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


# Enable foreign keys for SQLite
@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign keys for SQLite"""
    if settings.is_sqlite:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """
    Database session context manager
    Automatically commits on success, rollbacks on error
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except (FleetError, PermissionError) as e:
        session.rollback()
        logger.debug(f"Rolled back after {type(e).__name__}: {e}")
        raise
    except Exception as e:
        session.rollback()
        logger.error(f"Database error: {e}")
        raise
    finally:
        session.close()


def create_schema():
    """Create all tables (idempotent)"""
    # Import all models to register them
    from backend import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def init_database():
    """Initialize database schema"""
    if not settings.is_in_memory:
        ensure_directories()

    logger.info("Creating database schema...")
    create_schema()
    logger.success("Database schema created successfully")


def drop_all_tables():
    """Drop all tables (use with caution!)"""
    logger.warning("Dropping all database tables...")
    Base.metadata.drop_all(bind=engine)
    logger.info("All tables dropped")


def reset_database():
    """Reset database (drop and recreate)"""
    drop_all_tables()
    init_database()
