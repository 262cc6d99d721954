"""
Celery tasks for embedding lifecycle maintenance.

- expire_embeddings: TTL sweep, deletes embeddings whose expires_at has passed
- cleanup_embeddings: retention cleanup of stale embeddings by status and age

Both run on the beat schedule defined in careercompass.workers.celery_app.
"""
import asyncio
import logging
import threading
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from careercompass.config import settings
from careercompass.models.embedding import EmbeddingStatus
from careercompass.repositories.embedding_repository import EmbeddingRepository
from careercompass.schemas.embedding import CleanupOptions, CleanupResult
from careercompass.workers.celery_app import celery_app
from careercompass.utils.metrics import maintenance_deleted_total, maintenance_job_duration_seconds
from careercompass.utils.logging import log_cleanup_completed, log_expiry_sweep, log_maintenance_failed

logger = logging.getLogger(__name__)

# Engines are created per task run: asyncio.run() starts a new loop each time
# and pooled connections stay bound to the loop that opened them.


@asynccontextmanager
async def _worker_sessions(session_factory=None):
    """
    Yield a session factory for one task run.

    Without an injected factory, the engine is created inside the current
    event loop and disposed when the run ends.
    """
    if session_factory is not None:
        yield session_factory
        return

    engine = create_async_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,
    )
    try:
        yield async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    finally:
        await engine.dispose()


def _run_async(coro):
    """
    Run a coroutine from sync Celery code.

    Uses asyncio.run() normally; when a loop is already running in this
    thread, runs the coroutine on a fresh loop in a helper thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    result = None
    exception = None

    def run_in_thread():
        nonlocal result, exception
        try:
            result = asyncio.run(coro)
        except Exception as e:
            exception = e

    thread = threading.Thread(target=run_in_thread)
    thread.start()
    thread.join()

    if exception:
        raise exception
    return result


async def _expire_embeddings_async(
    session_factory=None,
    now: Optional[datetime] = None,
) -> int:
    async with _worker_sessions(session_factory) as sessions:
        async with sessions() as db:
            return await EmbeddingRepository(db).delete_expired(now=now)


async def _cleanup_embeddings_async(
    options: CleanupOptions,
    session_factory=None,
    now: Optional[datetime] = None,
) -> CleanupResult:
    async with _worker_sessions(session_factory) as sessions:
        async with sessions() as db:
            return await EmbeddingRepository(db).cleanup(options, now=now)


@celery_app.task(name="expire_embeddings")
def expire_embeddings_task() -> int:
    """
    Delete every embedding whose expires_at is in the past.

    Returns:
        Number of embeddings deleted
    """
    start_time = time.time()
    job_type = "expire_embeddings"

    try:
        deleted = _run_async(_expire_embeddings_async())
    except Exception as e:
        duration = time.time() - start_time
        maintenance_job_duration_seconds.labels(job_type=job_type, status="failed").observe(duration)
        log_maintenance_failed(logger, task=job_type, error=str(e), duration_ms=duration * 1000)
        raise

    duration = time.time() - start_time
    maintenance_job_duration_seconds.labels(job_type=job_type, status="completed").observe(duration)
    maintenance_deleted_total.labels(job_type=job_type).inc(deleted)
    log_expiry_sweep(logger, deleted=deleted, duration_ms=duration * 1000)
    return deleted


@celery_app.task(name="cleanup_embeddings")
def cleanup_embeddings_task(
    older_than_days: Optional[int] = None,
    status: Optional[str] = None,
    dry_run: bool = False,
) -> dict:
    """
    Delete (or count, with dry_run) embeddings in `status` that have not
    been updated for `older_than_days`.

    Defaults come from settings.cleanup_older_than_days and
    settings.cleanup_status.

    Returns:
        CleanupResult as a JSON-serializable dict
    """
    start_time = time.time()
    job_type = "cleanup_embeddings"

    options = CleanupOptions(
        older_than_days=older_than_days if older_than_days is not None else settings.cleanup_older_than_days,
        status=EmbeddingStatus(status or settings.cleanup_status),
        dry_run=dry_run,
    )

    try:
        result = _run_async(_cleanup_embeddings_async(options))
    except Exception as e:
        duration = time.time() - start_time
        maintenance_job_duration_seconds.labels(job_type=job_type, status="failed").observe(duration)
        log_maintenance_failed(logger, task=job_type, error=str(e), duration_ms=duration * 1000)
        raise

    duration = time.time() - start_time
    maintenance_job_duration_seconds.labels(job_type=job_type, status="completed").observe(duration)
    maintenance_deleted_total.labels(job_type=job_type).inc(result.deleted)
    log_cleanup_completed(
        logger,
        matched=result.matched,
        deleted=result.deleted,
        dry_run=result.dry_run,
        status=options.status.value,
        older_than_days=options.older_than_days,
        duration_ms=duration * 1000,
    )
    return result.model_dump(mode="json")
