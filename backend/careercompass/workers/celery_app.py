"""
Celery application configuration.
Sets up Celery with Redis broker/result backend and the maintenance beat schedule.
"""
import logging
from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging, worker_ready, task_prerun, task_postrun, task_failure
from careercompass.config import settings
from careercompass.utils.metrics import (
    maintenance_jobs_processing,
    maintenance_jobs_completed_total,
    maintenance_jobs_failed_total,
)
from careercompass.utils.logging import configure_logging
from careercompass.workers.metrics_server import start_metrics_server

logger = logging.getLogger(__name__)

# Create Celery app
celery_app = Celery(
    "careercompass",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "careercompass.tasks.maintenance",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=50,
)

celery_app.conf.beat_schedule = {
    "expire-embeddings": {
        "task": "expire_embeddings",
        "schedule": float(settings.expiry_sweep_interval_seconds),
    },
    "cleanup-embeddings": {
        "task": "cleanup_embeddings",
        "schedule": crontab(hour=3, minute=0),
    },
}


@setup_logging.connect
def setup_logging_handler(**kwargs):
    """Replace Celery's logging setup with structured JSON logging."""
    configure_logging('compass-worker', settings.log_level)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    """Expose worker metrics once the worker is up."""
    try:
        start_metrics_server(port=settings.metrics_port)
    except OSError as e:
        logger.warning(f"Failed to start metrics server: {e}")


# Celery signal handlers for metrics
@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **kwds):
    """Track task start."""
    job_type = task.name if task else "unknown"
    maintenance_jobs_processing.labels(job_type=job_type).inc()


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, retval=None, state=None, **kwds):
    """Track task completion (fires after failures too)."""
    job_type = task.name if task else "unknown"
    maintenance_jobs_processing.labels(job_type=job_type).dec()
    maintenance_jobs_completed_total.labels(job_type=job_type, status=state or "unknown").inc()


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, traceback=None, einfo=None, **kwds):
    """Track task failures."""
    job_type = sender.name if sender else "unknown"
    maintenance_jobs_failed_total.labels(job_type=job_type).inc()
