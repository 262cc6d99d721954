"""
Pydantic schemas for similarity search.
"""
from pydantic import BaseModel, Field
from typing import List, Optional

from careercompass.config import settings
from careercompass.models.embedding import ContentType
from careercompass.schemas.embedding import EmbeddingResponse


class SimilaritySearchOptions(BaseModel):
    """
    Options for a brute-force similarity query.

    exhaustive: scan every filtered candidate instead of the
        limit * candidate_multiplier over-fetch window.
    skip_mismatched: skip candidates whose vector length differs from the
        query instead of failing the whole query.
    """
    content_types: Optional[List[ContentType]] = None
    user_id: Optional[str] = None
    limit: int = Field(settings.search_default_limit, ge=1, le=100)
    min_similarity: float = Field(settings.search_min_similarity, ge=-1.0, le=1.0)
    exclude_ids: List[str] = Field(default_factory=list)
    include_content: bool = False
    exhaustive: bool = False
    skip_mismatched: bool = False


class SimilaritySearchRequest(SimilaritySearchOptions):
    """Schema for a similarity search request."""
    vector: List[float] = Field(..., min_length=1, description="Query embedding vector")
    track_access: bool = Field(False, description="Record an access on every returned embedding")


class ContentProjection(BaseModel):
    """Fields projected from a referenced source document."""
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    summary: Optional[str] = None


class SearchHit(BaseModel):
    """Schema for a single ranked match."""
    embedding: EmbeddingResponse
    similarity: float = Field(..., description="Cosine similarity (-1.0 to 1.0)")
    content: Optional[ContentProjection] = None


class SearchResponse(BaseModel):
    """Schema for search response."""
    results: List[SearchHit]
    total_results: int
    candidates_scanned: int
    duration_ms: float
