"""
Services layer for search and content resolution.
"""
from careercompass.services.content_resolver import (
    ContentResolver,
    ContentResolverRegistry,
    InMemoryContentResolver,
    TableContentResolver,
)
from careercompass.services.similarity_service import (
    ScoredEmbedding,
    SimilaritySearchResult,
    SimilaritySearchService,
)

__all__ = [
    "ContentResolver",
    "ContentResolverRegistry",
    "InMemoryContentResolver",
    "TableContentResolver",
    "ScoredEmbedding",
    "SimilaritySearchResult",
    "SimilaritySearchService",
]
