"""
Database configuration and session management.
Uses SQLAlchemy async engine (PostgreSQL via asyncpg in production).
"""
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from careercompass.config import settings
from careercompass.models.base import Base


def build_engine(database_url: str = None):
    """
    Create an async engine for the given URL.
    Pool sizing only applies to server databases; SQLite uses its own pool.
    """
    database_url = database_url or settings.database_url
    engine_kwargs = {
        "echo": False,  # Disable SQLAlchemy query logging
        "pool_pre_ping": True,
    }
    if not database_url.startswith("sqlite"):
        engine_kwargs.update(pool_size=10, max_overflow=20)
    return create_async_engine(database_url, **engine_kwargs)


engine = build_engine()

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncSession:
    """
    Dependency for FastAPI routes to get database session.
    Usage: db: AsyncSession = Depends(get_db)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """
    Initialize database: create tables.
    Called on application startup.
    """
    from careercompass.models.embedding import Embedding  # noqa: F401 - registers the table

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
