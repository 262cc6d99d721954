"""
Database models package.
"""
from careercompass.models.base import Base
from careercompass.models.embedding import (
    ContentType,
    DocumentRef,
    Embedding,
    EmbeddingStatus,
    Priority,
    Sentiment,
)

__all__ = [
    "Base",
    "ContentType",
    "DocumentRef",
    "Embedding",
    "EmbeddingStatus",
    "Priority",
    "Sentiment",
]
