"""
Tests for maintenance Celery tasks.
The async bodies run against the test database; the Celery wrappers are
exercised with their async bodies patched out.
"""
import asyncio
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from careercompass.config import settings
from careercompass.models.base import Base, utcnow
from careercompass.models.embedding import EmbeddingStatus
from careercompass.repositories.embedding_repository import EmbeddingRepository
from careercompass.schemas.embedding import CleanupOptions, CleanupResult, EmbeddingOptions
from careercompass.tasks.maintenance import (
    _cleanup_embeddings_async,
    _expire_embeddings_async,
    _run_async,
    cleanup_embeddings_task,
    expire_embeddings_task,
)
from careercompass.workers.celery_app import celery_app

from conftest import make_content


class TestMaintenanceBodies:
    """Tests for the async task bodies."""

    @pytest.mark.asyncio
    async def test_expire_embeddings(self, make_embedding, session_maker, repository: EmbeddingRepository):
        """Test the expiry sweep deletes only expired records."""
        now = utcnow()
        await make_embedding("old", [1.0], options=EmbeddingOptions(expires_at=now - timedelta(seconds=1)))
        await make_embedding("new", [1.0], options=EmbeddingOptions(expires_at=now + timedelta(hours=1)))

        deleted = await _expire_embeddings_async(session_factory=session_maker, now=now)

        assert deleted == 1
        assert await repository.count() == 1

    @pytest.mark.asyncio
    async def test_cleanup_embeddings(self, make_embedding, session_maker, repository: EmbeddingRepository):
        """Test retention cleanup deletes stale records of the given status."""
        await make_embedding("stale", [1.0], status=EmbeddingStatus.OUTDATED)
        await make_embedding("live", [1.0])

        result = await _cleanup_embeddings_async(
            CleanupOptions(older_than_days=90),
            session_factory=session_maker,
            now=utcnow() + timedelta(days=100),
        )

        assert result.deleted == 1
        assert await repository.count() == 1


class TestRunAsync:
    """Tests for running coroutines from sync task code."""

    def test_without_running_loop(self):
        """Test coroutines run via asyncio.run when no loop is running."""
        async def answer():
            return 42

        assert _run_async(answer()) == 42

    @pytest.mark.asyncio
    async def test_with_running_loop(self):
        """Test coroutines run in a helper thread when a loop is running."""
        async def answer():
            return 7

        assert _run_async(answer()) == 7

    @pytest.mark.asyncio
    async def test_with_running_loop_propagates_errors(self):
        """Test errors from the helper thread are re-raised."""
        async def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            _run_async(boom())


class TestMaintenanceTasks:
    """Tests for the Celery task wrappers."""

    def test_expire_task(self):
        """Test the expiry task returns the deleted count and logs it."""
        with patch(
            "careercompass.tasks.maintenance._expire_embeddings_async",
            new=AsyncMock(return_value=3)
        ), patch("careercompass.tasks.maintenance.log_expiry_sweep") as mock_log:
            assert expire_embeddings_task() == 3

        mock_log.assert_called_once()
        assert mock_log.call_args.kwargs["deleted"] == 3

    def test_expire_task_failure(self):
        """Test failures are logged and re-raised."""
        with patch(
            "careercompass.tasks.maintenance._expire_embeddings_async",
            new=AsyncMock(side_effect=RuntimeError("db down"))
        ), patch("careercompass.tasks.maintenance.log_maintenance_failed") as mock_log:
            with pytest.raises(RuntimeError):
                expire_embeddings_task()

        assert mock_log.call_args.kwargs["task"] == "expire_embeddings"
        assert mock_log.call_args.kwargs["error"] == "db down"

    def test_cleanup_task_defaults(self):
        """Test the cleanup task uses configured retention defaults."""
        result = CleanupResult(dry_run=False, matched=2, deleted=2, cutoff=utcnow())
        body = AsyncMock(return_value=result)

        with patch("careercompass.tasks.maintenance._cleanup_embeddings_async", new=body):
            output = cleanup_embeddings_task()

        options = body.call_args.args[0]
        assert options.older_than_days == 90
        assert options.status == EmbeddingStatus.OUTDATED
        assert options.dry_run is False
        assert output["deleted"] == 2
        assert isinstance(output["cutoff"], str)

    def test_cleanup_task_overrides(self):
        """Test overrides are passed through to the cleanup."""
        result = CleanupResult(dry_run=True, matched=5, deleted=0, cutoff=utcnow())
        body = AsyncMock(return_value=result)

        with patch("careercompass.tasks.maintenance._cleanup_embeddings_async", new=body):
            output = cleanup_embeddings_task(older_than_days=7, status="archived", dry_run=True)

        options = body.call_args.args[0]
        assert options.older_than_days == 7
        assert options.status == EmbeddingStatus.ARCHIVED
        assert options.dry_run is True
        assert output["matched"] == 5


class TestWorkerEngine:
    """Tests for the per-run worker engine."""

    def test_expire_task_runs_repeatedly(self, tmp_path, monkeypatch):
        """Test consecutive sweeps each open and dispose their own engine."""
        database_url = f"sqlite+aiosqlite:///{tmp_path / 'worker.db'}"

        async def seed():
            engine = create_async_engine(database_url)
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            async with sessions() as db:
                await EmbeddingRepository(db).create_embedding(
                    make_content("old"),
                    [1.0],
                    EmbeddingOptions(expires_at=utcnow() - timedelta(minutes=1)),
                )
            await engine.dispose()

        asyncio.run(seed())
        monkeypatch.setattr(settings, "database_url", database_url)

        engines = []

        def tracking_engine(*args, **kwargs):
            engine = create_async_engine(*args, **kwargs)
            engines.append(engine)
            return engine

        with patch("careercompass.tasks.maintenance.create_async_engine", side_effect=tracking_engine):
            assert expire_embeddings_task() == 1
            assert expire_embeddings_task() == 0

        assert len(engines) == 2
        assert engines[0] is not engines[1]
        assert all(engine.pool.checkedout() == 0 for engine in engines)


class TestBeatSchedule:
    """Tests for the Celery beat schedule."""

    def test_maintenance_tasks_scheduled(self):
        """Test both maintenance tasks are on the beat schedule."""
        schedule = celery_app.conf.beat_schedule

        assert schedule["expire-embeddings"]["task"] == "expire_embeddings"
        assert schedule["expire-embeddings"]["schedule"] == 60.0
        assert schedule["cleanup-embeddings"]["task"] == "cleanup_embeddings"

    def test_tasks_registered(self):
        """Test the task names resolve on the Celery app."""
        assert "expire_embeddings" in celery_app.tasks
        assert "cleanup_embeddings" in celery_app.tasks
