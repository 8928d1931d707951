"""
Database session management for the Compliance Framework Service.

This module sets up the SQLAlchemy engine and session handling. It provides a
dependency that can be injected into FastAPI routes to get a database session.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from .config import settings

is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# The connect_args are specific to SQLite and are needed to allow multithreading,
# which is relevant for FastAPI's threadpool.
engine_args = {}
if is_sqlite:
    engine_args["connect_args"] = {
        "check_same_thread": False,
        "timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS,
    }

engine = create_engine(settings.DATABASE_URL, **engine_args)


def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite only enforces ON DELETE CASCADE when foreign keys are switched on."""
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON;")
    finally:
        cursor.close()


if is_sqlite:
    event.listen(engine, "connect", enable_sqlite_foreign_keys)

# SessionLocal is a factory for creating new Session objects
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """
    FastAPI dependency to get a DB session.
    Ensures the database session is always closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
