"""Database engine and session management"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from coop_lending.config import settings


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for PostgreSQL (production) or SQLite (tests, local runs).

    SQLite needs foreign keys switched on per connection so payments can never
    reference a missing loan; pooling options only apply to server databases.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(database_url, connect_args={"check_same_thread": False})

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    # Max 20 connections, recycled hourly
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

# Services commit per operation and re-read afterwards, so committed rows must expire
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=True, bind=engine)


def get_db() -> Session:
    """One session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
