"""
Embedding store endpoints: ingestion, lookup, update and maintenance.
"""
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, status, Query

from careercompass.api.dependencies import get_embedding_repository
from careercompass.exceptions import ConflictError, NotFoundError, ValidationError
from careercompass.repositories.embedding_repository import EmbeddingRepository
from careercompass.schemas.embedding import (
    BatchCreateResult,
    CleanupOptions,
    CleanupResult,
    EmbeddingBatchCreate,
    EmbeddingCreate,
    EmbeddingResponse,
    EmbeddingUpdate,
)
from careercompass.utils.metrics import (
    embeddings_created_total,
    embeddings_rejected_total,
    maintenance_deleted_total,
)
from careercompass.utils.logging import (
    log_embedding_created,
    log_embeddings_batch_created,
    log_cleanup_completed,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=EmbeddingResponse, status_code=status.HTTP_201_CREATED)
async def create_embedding(
    payload: EmbeddingCreate,
    include_vector: bool = Query(True, description="Return the stored vector"),
    repository: EmbeddingRepository = Depends(get_embedding_repository)
):
    """
    Store a new embedding.

    Returns 409 when an embedding already exists for the same
    (content_id, content_type) and 422 when the input is malformed.
    """
    start_time = time.time()
    try:
        embedding = await repository.create_embedding(payload.content, payload.vector, payload.options)
    except ValidationError as e:
        embeddings_rejected_total.labels(reason="validation").inc()
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )
    except ConflictError as e:
        embeddings_rejected_total.labels(reason="conflict").inc()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )

    embeddings_created_total.labels(content_type=embedding.content_type.value).inc()
    log_embedding_created(
        logger,
        embedding_id=embedding.id,
        content_id=embedding.content_id,
        content_type=embedding.content_type.value,
        dimensions=embedding.dimensions,
        duration_ms=(time.time() - start_time) * 1000,
        user_id=embedding.user_id
    )
    return EmbeddingResponse.from_record(embedding, include_vector=include_vector)


@router.post("/batch", response_model=BatchCreateResult)
async def batch_create_embeddings(
    payload: EmbeddingBatchCreate,
    repository: EmbeddingRepository = Depends(get_embedding_repository)
):
    """
    Store many embeddings, best effort.

    Always returns 200 with one result per item; failed items carry the
    error and never block the rest of the batch.
    """
    start_time = time.time()
    result = await repository.batch_create(payload.items)

    for item, outcome in zip(payload.items, result.results):
        if outcome.success:
            embeddings_created_total.labels(content_type=item.content.content_type.value).inc()
        else:
            reason = "conflict" if outcome.error_type == ConflictError.__name__ else "validation"
            embeddings_rejected_total.labels(reason=reason).inc()

    log_embeddings_batch_created(
        logger,
        inserted=result.inserted,
        failed=result.failed,
        duration_ms=(time.time() - start_time) * 1000
    )
    return result


@router.post("/cleanup", response_model=CleanupResult)
async def cleanup_embeddings(
    options: CleanupOptions,
    repository: EmbeddingRepository = Depends(get_embedding_repository)
):
    """
    Delete embeddings with the given status that have not been updated
    for `older_than_days`. With dry_run, only count them.
    """
    start_time = time.time()
    result = await repository.cleanup(options)

    if not result.dry_run:
        maintenance_deleted_total.labels(job_type="cleanup_api").inc(result.deleted)
    log_cleanup_completed(
        logger,
        matched=result.matched,
        deleted=result.deleted,
        dry_run=result.dry_run,
        status=options.status.value,
        older_than_days=options.older_than_days,
        duration_ms=(time.time() - start_time) * 1000
    )
    return result


@router.get("/{embedding_id}", response_model=EmbeddingResponse)
async def get_embedding(
    embedding_id: str,
    include_vector: bool = Query(True, description="Return the stored vector"),
    repository: EmbeddingRepository = Depends(get_embedding_repository)
):
    """Fetch one embedding record."""
    try:
        embedding = await repository.get_or_raise(embedding_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return EmbeddingResponse.from_record(embedding, include_vector=include_vector)


@router.patch("/{embedding_id}", response_model=EmbeddingResponse)
async def update_embedding(
    embedding_id: str,
    patch: EmbeddingUpdate,
    repository: EmbeddingRepository = Depends(get_embedding_repository)
):
    """
    Partially update an embedding.
    Text changes recompute quality metrics; vector changes recompute
    dimensions and bump the version.
    """
    try:
        embedding = await repository.update_embedding(embedding_id, patch)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    logger.info(
        f"Embedding updated: {embedding_id}",
        extra={
            "event": "embedding_updated",
            "embedding_id": embedding_id,
            "fields": sorted(patch.model_dump(exclude_unset=True)),
            "version": embedding.version
        }
    )
    return EmbeddingResponse.from_record(embedding)


@router.post("/{embedding_id}/outdated", response_model=EmbeddingResponse)
async def mark_embedding_outdated(
    embedding_id: str,
    repository: EmbeddingRepository = Depends(get_embedding_repository)
):
    """Mark an embedding outdated so it no longer appears in search results."""
    try:
        embedding = await repository.mark_outdated(embedding_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    logger.info(
        f"Embedding marked outdated: {embedding_id}",
        extra={"event": "embedding_outdated", "embedding_id": embedding_id}
    )
    return EmbeddingResponse.from_record(embedding, include_vector=False)


@router.post("/{embedding_id}/access", response_model=EmbeddingResponse)
async def track_embedding_access(
    embedding_id: str,
    repository: EmbeddingRepository = Depends(get_embedding_repository)
):
    """Record one retrieval of an embedding (access_count, last_accessed)."""
    updated = await repository.track_access([embedding_id])
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Embedding {embedding_id} not found"
        )
    embedding = await repository.get_or_raise(embedding_id)
    return EmbeddingResponse.from_record(embedding, include_vector=False)
