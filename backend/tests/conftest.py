"""
Test configuration and fixtures.
Uses an in-memory SQLite database through aiosqlite by default;
set TEST_DATABASE_URL to run against PostgreSQL instead.
"""
import os

# Set test environment before any imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["ENVIRONMENT"] = "test"

import pytest
from datetime import datetime, timedelta
from typing import AsyncGenerator

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from careercompass.models.base import Base
from careercompass.models.embedding import ContentType, Embedding, EmbeddingStatus
from careercompass.repositories.embedding_repository import EmbeddingRepository
from careercompass.schemas.embedding import ContentData, EmbeddingOptions
from careercompass.services.content_resolver import ContentResolverRegistry


TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# Fixed base instant so candidate scan order is deterministic
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def make_content(
    content_id: str,
    content_type: ContentType = ContentType.JOB_DESCRIPTION,
    text: str = None,
    **fields
) -> ContentData:
    """Build ContentData with sensible defaults."""
    return ContentData(
        content_id=content_id,
        content_type=content_type,
        text=text or f"Senior Python developer role {content_id}",
        **fields
    )


@pytest.fixture(scope="function")
async def engine():
    """Create a fresh schema for each test."""
    engine_kwargs = {"echo": False}
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        engine_kwargs.update(connect_args={"check_same_thread": False}, poolclass=StaticPool)

    engine = create_async_engine(TEST_DATABASE_URL, **engine_kwargs)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_maker() as session:
        yield session


@pytest.fixture(scope="function")
def repository(db_session: AsyncSession) -> EmbeddingRepository:
    return EmbeddingRepository(db_session)


@pytest.fixture(scope="function")
def make_embedding(db_session: AsyncSession):
    """
    Factory fixture persisting an embedding.

    Each call gets a created_at one second after the previous one, so
    candidates are scanned in call order.
    """
    counter = {"n": 0}

    async def _make(
        content_id: str,
        vector,
        content_type: ContentType = ContentType.JOB_DESCRIPTION,
        status: EmbeddingStatus = EmbeddingStatus.ACTIVE,
        options: EmbeddingOptions = None,
        **content_fields
    ) -> Embedding:
        embedding = EmbeddingRepository.build_embedding(
            make_content(content_id, content_type, **content_fields),
            vector,
            options,
        )
        embedding.status = status
        embedding.created_at = BASE_TIME + timedelta(seconds=counter["n"])
        counter["n"] += 1
        db_session.add(embedding)
        await db_session.commit()
        return embedding

    return _make


@pytest.fixture(scope="function")
def resolvers() -> ContentResolverRegistry:
    return ContentResolverRegistry()


def get_test_app(db_session: AsyncSession, resolvers: ContentResolverRegistry) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from careercompass.main import app
    from careercompass.database import get_db
    from careercompass.api.dependencies import get_content_resolvers

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_content_resolvers] = lambda: resolvers

    return app


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, resolvers: ContentResolverRegistry) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = get_test_app(db_session, resolvers)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up overrides
    app.dependency_overrides.clear()
