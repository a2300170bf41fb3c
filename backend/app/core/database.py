"""Database configuration and session management."""

from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from app.config import settings


def _engine_kwargs() -> dict[str, Any]:
    """Engine options for the configured backend."""
    if settings.is_sqlite:
        # aiosqlite runs on a single connection per thread; pool sizing does not apply
        return {"connect_args": {"check_same_thread": False}}

    return {
        "pool_size": settings.DB_POOL_SIZE,  # Connection pool size (default: 20)
        "max_overflow": settings.DB_MAX_OVERFLOW,  # Extra connections allowed (default: 10)
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "connect_args": {
            "server_settings": {
                "application_name": "pocketbook_api",  # Identify app in database logs
                "statement_timeout": "30000",  # 30 second query timeout
            },
        },
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    **_engine_kwargs(),
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database session.

    Yields:
        AsyncSession: Database session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """Initialize database tables (use Alembic migrations in production)."""
    # Register every model on Base.metadata before create_all
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
