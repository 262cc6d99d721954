"""
Similarity search endpoint.
Ranks stored embeddings against a caller-supplied query vector.
"""
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, status

from careercompass.api.dependencies import get_embedding_repository, get_similarity_service
from careercompass.exceptions import DimensionMismatchError, SearchTimeoutError, ValidationError
from careercompass.repositories.embedding_repository import EmbeddingRepository
from careercompass.schemas.embedding import EmbeddingResponse
from careercompass.schemas.search import SearchHit, SearchResponse, SimilaritySearchRequest
from careercompass.services.similarity_service import SimilaritySearchService
from careercompass.utils.metrics import (
    similarity_searches_total,
    similarity_search_duration_seconds,
    similarity_candidates_scanned,
)
from careercompass.utils.logging import log_similarity_search

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/similar", response_model=SearchResponse)
async def find_similar(
    request: SimilaritySearchRequest,
    service: SimilaritySearchService = Depends(get_similarity_service),
    repository: EmbeddingRepository = Depends(get_embedding_repository)
):
    """
    Find the active embeddings most similar to the query vector.

    Flow:
    1. Fetch candidates matching the filters
    2. Score by cosine similarity, drop those below min_similarity
    3. Rank (ties by content_id, then id), cap at limit
    4. Optionally attach resolved content and record access on the hits

    Returns 422 for a non-finite query vector, 400 when a candidate's
    dimensions differ from the query and 504 when the search exceeds the
    configured timeout.
    """
    start_time = time.time()
    try:
        result = await service.find_similar(request.vector, options=request)
    except ValidationError as e:
        similarity_searches_total.labels(outcome="invalid_query").inc()
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )
    except DimensionMismatchError as e:
        similarity_searches_total.labels(outcome="dimension_mismatch").inc()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid search request: {str(e)}"
        )
    except SearchTimeoutError as e:
        similarity_searches_total.labels(outcome="timeout").inc()
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=str(e)
        )

    if request.track_access and result.hits:
        await repository.track_access(result.embedding_ids)

    duration = time.time() - start_time
    similarity_searches_total.labels(outcome="success").inc()
    similarity_search_duration_seconds.observe(duration)
    similarity_candidates_scanned.observe(result.candidates_scanned)
    log_similarity_search(
        logger,
        results=len(result.hits),
        candidates_scanned=result.candidates_scanned,
        limit=request.limit,
        min_similarity=request.min_similarity,
        duration_ms=duration * 1000,
        user_id=request.user_id,
        skipped_mismatched=result.skipped_mismatched
    )

    return SearchResponse(
        results=[
            SearchHit(
                embedding=EmbeddingResponse.from_record(hit.embedding, include_vector=False),
                similarity=hit.similarity,
                content=hit.content
            )
            for hit in result.hits
        ],
        total_results=len(result.hits),
        candidates_scanned=result.candidates_scanned,
        duration_ms=result.duration_ms
    )
