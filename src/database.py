"""
Database configuration and session management.

Provides:
- Async engine creation with per-dialect configuration
- Async session factory used by the repositories
- Database initialization utilities
"""

import logging
from pathlib import Path

from sqlalchemy import make_url, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)


def _get_async_database_url(sync_url: str) -> str:
    """Convert sync database URL to async URL."""
    if sync_url.lower().startswith("sqlite:///"):
        return sync_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    elif sync_url.lower().startswith("postgresql://"):
        return sync_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return sync_url


def _ensure_sqlite_directory(async_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    database = make_url(async_url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for a database URL.

    Args:
        database_url: Sync or async SQLAlchemy URL
        echo: Log SQL statements

    Returns:
        Configured AsyncEngine
    """
    async_url = _get_async_database_url(database_url)

    if "sqlite" in async_url.lower():
        _ensure_sqlite_directory(async_url)
        return create_async_engine(
            async_url,
            echo=echo,
            connect_args={"timeout": 30},  # Wait for competing writers instead of failing
        )

    return create_async_engine(
        async_url,
        pool_size=5,  # Maximum number of connections in pool
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,  # Test connections before using them
        echo=echo,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Initialize database by creating all tables.

    This is useful for development and testing. In production, use Alembic migrations.
    """
    from src.models.base import Base
    import src.models  # noqa: F401  (registers every model on Base.metadata)

    logger.info("Creating database tables...")
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")


async def check_connection(engine: AsyncEngine) -> bool:
    """
    Test database connection.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
