"""
Pydantic schemas for API request/response validation.
"""
from careercompass.schemas.embedding import (
    BatchCreateResult,
    BatchItemResult,
    ChunkInfo,
    CleanupOptions,
    CleanupResult,
    ContentData,
    EmbeddingBatchCreate,
    EmbeddingCreate,
    EmbeddingOptions,
    EmbeddingResponse,
    EmbeddingUpdate,
    SearchMetadataOverrides,
    Semantics,
)
from careercompass.schemas.search import (
    ContentProjection,
    SearchHit,
    SearchResponse,
    SimilaritySearchOptions,
    SimilaritySearchRequest,
)

__all__ = [
    "BatchCreateResult",
    "BatchItemResult",
    "ChunkInfo",
    "CleanupOptions",
    "CleanupResult",
    "ContentData",
    "EmbeddingBatchCreate",
    "EmbeddingCreate",
    "EmbeddingOptions",
    "EmbeddingResponse",
    "EmbeddingUpdate",
    "SearchMetadataOverrides",
    "Semantics",
    "ContentProjection",
    "SearchHit",
    "SearchResponse",
    "SimilaritySearchOptions",
    "SimilaritySearchRequest",
]
