"""
Similarity search over stored embeddings.

Brute-force nearest neighbour: candidates are read from the repository,
scored in memory with cosine similarity, thresholded, ranked and capped.
There is no index structure; cost is O(candidates x dimensions).
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from careercompass.config import settings
from careercompass.exceptions import DimensionMismatchError, SearchTimeoutError
from careercompass.models.embedding import Embedding
from careercompass.repositories.embedding_repository import EmbeddingRepository
from careercompass.schemas.search import ContentProjection, SimilaritySearchOptions
from careercompass.services.content_resolver import ContentResolverRegistry
from careercompass.utils.vector_math import cosine_similarity, ensure_finite

logger = logging.getLogger(__name__)


@dataclass
class ScoredEmbedding:
    """One ranked match."""
    embedding: Embedding
    similarity: float
    content: Optional[ContentProjection] = None


@dataclass
class SimilaritySearchResult:
    """Ranked matches plus scan statistics."""
    hits: List[ScoredEmbedding] = field(default_factory=list)
    candidates_scanned: int = 0
    skipped_mismatched: int = 0
    duration_ms: float = 0.0

    @property
    def embedding_ids(self) -> List[str]:
        return [hit.embedding.id for hit in self.hits]


class SimilaritySearchService:
    """
    Stateless query component over an EmbeddingRepository.

    The search itself never writes; callers decide whether to record
    access on the hits they surface (EmbeddingRepository.track_access).
    """

    def __init__(
        self,
        repository: EmbeddingRepository,
        resolvers: Optional[ContentResolverRegistry] = None,
        candidate_multiplier: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.repository = repository
        self.resolvers = resolvers or ContentResolverRegistry()
        self.candidate_multiplier = candidate_multiplier or settings.search_candidate_multiplier
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.search_timeout_seconds

    async def find_similar(
        self,
        query: Union[Sequence[float], Embedding],
        options: Optional[SimilaritySearchOptions] = None,
    ) -> SimilaritySearchResult:
        """
        Find the active embeddings most similar to a query vector.

        Args:
            query: Query vector, or an Embedding whose vector is used
            options: Filters, limit, threshold and content resolution

        Returns:
            SimilaritySearchResult with hits sorted by similarity
            (descending), ties broken by content_id then id

        Raises:
            DimensionMismatchError: If a candidate's vector length differs
                from the query and skip_mismatched is off
            SearchTimeoutError: If the search exceeds the timeout
            ValidationError: If the query vector holds NaN or infinite values
        """
        options = options or SimilaritySearchOptions()
        query_vector = list(query.vector) if isinstance(query, Embedding) else list(query)
        ensure_finite(query_vector, field="query")

        if not self.timeout_seconds:
            return await self._search(query_vector, options)

        try:
            return await asyncio.wait_for(
                self._search(query_vector, options),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise SearchTimeoutError(self.timeout_seconds)

    async def _search(
        self,
        query_vector: List[float],
        options: SimilaritySearchOptions,
    ) -> SimilaritySearchResult:
        start_time = time.time()

        # The over-fetch window may hold fewer than `limit` rows above the
        # threshold even when the table has more; exhaustive=True scans all.
        fetch_limit = None if options.exhaustive else options.limit * self.candidate_multiplier
        candidates = await self.repository.find_candidates(options, limit=fetch_limit)

        scored: List[ScoredEmbedding] = []
        skipped = 0
        for candidate in candidates:
            try:
                similarity = cosine_similarity(query_vector, candidate.vector)
            except DimensionMismatchError as e:
                if not options.skip_mismatched:
                    raise
                skipped += 1
                logger.warning(f"Skipping embedding {candidate.id}: {e}")
                continue

            if similarity < options.min_similarity:
                continue
            scored.append(ScoredEmbedding(embedding=candidate, similarity=similarity))

        scored.sort(key=lambda hit: (-hit.similarity, hit.embedding.content_id, hit.embedding.id))
        hits = scored[:options.limit]

        if options.include_content and hits:
            await self._attach_content(hits)

        return SimilaritySearchResult(
            hits=hits,
            candidates_scanned=len(candidates),
            skipped_mismatched=skipped,
            duration_ms=(time.time() - start_time) * 1000,
        )

    async def _attach_content(self, hits: List[ScoredEmbedding]) -> None:
        """Resolve document references in one batch after ranking."""
        resolved = await self.resolvers.resolve_many(hit.embedding.document_ref for hit in hits)
        for hit in hits:
            ref = hit.embedding.document_ref
            if ref is not None:
                hit.content = resolved.get(ref)
