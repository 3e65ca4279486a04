"""
BookAPI Backend - Database Engine Management
=============================================

What:  Async SQLAlchemy engine construction and the declarative Base.
How:   `create_engine_from_settings()` builds the one engine (and its
       connection pool) the process uses; the app factory hands it to the
       BookGateway, which owns it until shutdown.
Who:   Used by the app lifespan, Alembic and the test fixtures.

Connection Pooling:
    pool_size + max_overflow bound the concurrent statements against
    PostgreSQL. pool_pre_ping validates a connection before checkout and
    pool_recycle retires connections older than an hour.
    SQLite (tests) uses SQLAlchemy's default pool for the dialect, so the
    pool arguments are left out there.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from bookapi.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Its metadata is what Alembic compares against and what the tests use to
    create the schema.
    """
    pass


def create_engine_from_settings(app_settings: Settings) -> AsyncEngine:
    """
    Create the shared async engine for the given settings.

    The engine is lazy: no connection is opened until the first statement
    (or the startup ping) runs.
    """
    engine_kwargs = {
        # Echo SQL only when debugging; it is very noisy otherwise
        "echo": app_settings.log_level == "DEBUG",
    }
    if not app_settings.is_sqlite:
        engine_kwargs.update(
            pool_size=app_settings.db_pool_size,
            max_overflow=app_settings.db_max_overflow,
            pool_pre_ping=app_settings.db_pool_pre_ping,
            pool_recycle=app_settings.db_pool_recycle,
        )
    return create_async_engine(app_settings.database_url, **engine_kwargs)
