"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- embedding_id
- content_id
- user_id
- duration_ms

Usage:
    from careercompass.utils.logging import configure_logging, log_embedding_created

    configure_logging('compass-api', 'INFO')
    log_embedding_created(logger, embedding_id='123', content_id='profile-1', duration_ms=4.2)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (compass-api or compass-worker)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (for docker logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    embedding_id: Optional[str] = None,
    content_id: Optional[str] = None,
    user_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        embedding_id: Optional embedding ID
        content_id: Optional content ID
        user_id: Optional user ID
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if embedding_id:
        extra["embedding_id"] = embedding_id
    if content_id:
        extra["content_id"] = content_id
    if user_id:
        extra["user_id"] = user_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Ingestion events

def log_embedding_created(
    logger: logging.Logger,
    embedding_id: str,
    content_id: str,
    content_type: Optional[str] = None,
    dimensions: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log embedding creation event.

    Args:
        logger: Logger instance
        embedding_id: Embedding ID (required)
        content_id: Content ID (required)
        content_type: Optional content type
        dimensions: Optional vector dimensions
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="embedding_created",
        embedding_id=embedding_id,
        content_id=content_id,
        duration_ms=duration_ms,
        **kwargs
    )
    if content_type:
        extra["content_type"] = content_type
    if dimensions is not None:
        extra["dimensions"] = dimensions

    logger.info(f"Embedding created: {embedding_id}", extra=extra)


def log_embeddings_batch_created(
    logger: logging.Logger,
    inserted: int,
    failed: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """Log a batch create with per-batch success/failure counts."""
    extra = _build_log_extra(
        event="embeddings_batch_created",
        duration_ms=duration_ms,
        inserted=inserted,
        failed=failed,
        **kwargs
    )

    message = f"Embedding batch created: {inserted} inserted, {failed} failed"
    if failed:
        logger.warning(message, extra=extra)
    else:
        logger.info(message, extra=extra)


# Search events

def log_similarity_search(
    logger: logging.Logger,
    results: int,
    candidates_scanned: int,
    limit: int,
    min_similarity: float,
    duration_ms: Optional[float] = None,
    user_id: Optional[str] = None,
    **kwargs
):
    """
    Log a completed similarity search.

    Args:
        logger: Logger instance
        results: Number of hits returned
        candidates_scanned: Number of candidates scored
        limit: Requested result cap
        min_similarity: Similarity threshold
        duration_ms: Optional duration in milliseconds
        user_id: Optional user filter
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="similarity_search",
        user_id=user_id,
        duration_ms=duration_ms,
        results=results,
        candidates_scanned=candidates_scanned,
        limit=limit,
        min_similarity=min_similarity,
        **kwargs
    )

    logger.info(
        f"Similarity search: {results} results from {candidates_scanned} candidates",
        extra=extra
    )


# Maintenance events

def log_cleanup_completed(
    logger: logging.Logger,
    matched: int,
    deleted: int,
    dry_run: bool,
    status: str,
    older_than_days: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """Log a retention cleanup run (or dry run)."""
    extra = _build_log_extra(
        event="embeddings_cleanup",
        duration_ms=duration_ms,
        matched=matched,
        deleted=deleted,
        dry_run=dry_run,
        status=status,
        older_than_days=older_than_days,
        **kwargs
    )

    if dry_run:
        logger.info(f"Cleanup dry run: {matched} embeddings would be deleted", extra=extra)
    else:
        logger.info(f"Cleanup completed: {deleted} embeddings deleted", extra=extra)


def log_expiry_sweep(
    logger: logging.Logger,
    deleted: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """Log a TTL expiry sweep."""
    extra = _build_log_extra(
        event="embeddings_expired",
        duration_ms=duration_ms,
        deleted=deleted,
        **kwargs
    )
    logger.info(f"Expiry sweep deleted {deleted} embeddings", extra=extra)


def log_maintenance_failed(
    logger: logging.Logger,
    task: str,
    error: str,
    duration_ms: Optional[float] = None,
    include_traceback: bool = True,
    **kwargs
):
    """
    Log a maintenance task failure.

    Args:
        logger: Logger instance
        task: Task name (required)
        error: Error message (required)
        duration_ms: Optional duration in milliseconds
        include_traceback: Whether to include stack trace
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="maintenance_failed",
        duration_ms=duration_ms,
        task=task,
        error=str(error),
        **kwargs
    )

    message = f"Maintenance task failed: {task} - {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
            return
    logger.error(message, extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
