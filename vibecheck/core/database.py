"""
Database configuration for VibeCheck.

This module provides the SQLite/SQLAlchemy setup for the local report store.
"""

import sqlite3
from typing import Generator
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.engine import Engine

from vibecheck.core.config import settings
from vibecheck.core.logging import logger

engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False},  # Needed for SQLite
    pool_pre_ping=True,
    pool_recycle=1800,  # Recycle connections after 30 minutes
    echo=False,
)


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")  # readers see a stable snapshot while ingest appends
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA temp_store=MEMORY")
        cursor.close()


# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


def get_db() -> Generator:
    """
    Get database session.

    Yields:
        Session: Database session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None) -> None:
    """
    Initialize database by creating all tables.

    Args:
        bind: Engine to create the tables on, defaults to the configured one.
    """
    # Import all models here to ensure they are registered with Base
    from vibecheck.models.report import Report  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)

    logger.info(f"Database initialized at {settings.DATABASE_URL}")
