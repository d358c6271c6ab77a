"""
Database initialization and connection management.

This module provides functions for:
1. Initializing the async engine and session factory
2. Creating the schema directly or through alembic migrations
3. Closing the engine on shutdown
"""

from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from studyquiz.common.exceptions import ConfigurationError
from studyquiz.common.logger import app_logger
from studyquiz.config import settings

logger = app_logger.getChild("database.init_db")

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "alembic"

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_engine() -> AsyncEngine:
    """Get the global async engine instance."""
    if _engine is None:
        raise ConfigurationError("Database engine not initialized. Call initialize_database() first.")
    return _engine


def get_session_factory() -> async_sessionmaker:
    """Get the global async session factory."""
    if _session_factory is None:
        raise ConfigurationError("Database session factory not initialized. Call initialize_database() first.")
    return _session_factory


async def initialize_database(
    database_url: Optional[str] = None,
    echo: Optional[bool] = None,
    pool_size: Optional[int] = None,
    max_overflow: Optional[int] = None,
    pool_timeout: Optional[int] = None,
) -> AsyncEngine:
    """
    Initialize the async database engine and session factory.

    Arguments left as None are taken from settings.

    Args:
        database_url: Database connection URL
        echo: Whether to echo SQL statements
        pool_size: Connection pool size
        max_overflow: Maximum number of connections to allow above pool_size
        pool_timeout: Timeout for getting a connection from the pool

    Returns:
        AsyncEngine instance
    """
    global _engine, _session_factory

    database_url = database_url or settings.DATABASE_URL
    engine_options = {"echo": settings.SQL_ECHO if echo is None else echo}
    # In-memory SQLite runs on a static pool that takes no sizing options
    if ":memory:" not in database_url:
        engine_options.update(
            pool_size=pool_size or settings.DB_POOL_SIZE,
            max_overflow=max_overflow if max_overflow is not None else settings.DB_MAX_OVERFLOW,
            pool_timeout=pool_timeout or settings.DB_POOL_TIMEOUT,
        )

    try:
        logger.info(f"Initializing database with URL: {database_url[:10]}...")

        _engine = create_async_engine(database_url, **engine_options)
        _session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        # Test connection
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        logger.info("Database engine initialized successfully")
        return _engine

    except Exception as e:
        logger.error(f"Failed to initialize async database: {str(e)}")
        raise


async def create_schema(engine: Optional[AsyncEngine] = None) -> None:
    """Create all tables that do not exist yet."""
    # Registers the analytics tables on the metadata
    from studyquiz.analytics import orm  # noqa: F401
    from studyquiz.database.base import Base

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema created")


def run_migrations(database_url: Optional[str] = None, revision: str = "head") -> None:
    """
    Upgrade the database to ``revision`` with alembic.

    Must not be called from inside a running event loop; the migration
    environment starts its own.
    """
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    config.set_main_option("sqlalchemy.url", database_url or settings.DATABASE_URL)

    logger.info(f"Running migrations up to {revision}")
    command.upgrade(config, revision)


async def close_database() -> None:
    """Close the database engine and all connections."""
    global _engine, _session_factory

    if _engine:
        try:
            await _engine.dispose()
            logger.info("Database engine closed successfully")
        except Exception as e:
            logger.error(f"Error closing database engine: {str(e)}")
            raise
        finally:
            _engine = None
            _session_factory = None
