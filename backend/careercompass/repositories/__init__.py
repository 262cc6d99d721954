"""
Repository layer for database operations.
Provides higher-level abstractions for complex queries.
"""
from careercompass.repositories.embedding_repository import EmbeddingRepository

__all__ = ["EmbeddingRepository"]
