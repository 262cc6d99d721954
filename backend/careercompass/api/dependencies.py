"""
Shared FastAPI dependencies for the embedding routes.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from careercompass.database import get_db
from careercompass.repositories.embedding_repository import EmbeddingRepository
from careercompass.services.content_resolver import ContentResolverRegistry
from careercompass.services.similarity_service import SimilaritySearchService

# Process-wide resolver registry; populated at startup by the host application
content_resolvers = ContentResolverRegistry()


def get_content_resolvers() -> ContentResolverRegistry:
    return content_resolvers


def get_embedding_repository(db: AsyncSession = Depends(get_db)) -> EmbeddingRepository:
    return EmbeddingRepository(db)


def get_similarity_service(
    repository: EmbeddingRepository = Depends(get_embedding_repository),
    resolvers: ContentResolverRegistry = Depends(get_content_resolvers),
) -> SimilaritySearchService:
    return SimilaritySearchService(repository, resolvers=resolvers)
