"""
Repository for embedding operations.
Owns validation, persistence and lifecycle maintenance of embedding records.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from careercompass.config import settings
from careercompass.exceptions import ConflictError, NotFoundError, ValidationError
from careercompass.models.base import to_naive_utc, utcnow
from careercompass.models.embedding import (
    ContentType,
    Embedding,
    EmbeddingStatus,
    Priority,
)
from careercompass.schemas.embedding import (
    BatchCreateResult,
    BatchItemResult,
    CleanupOptions,
    CleanupResult,
    ContentData,
    EmbeddingCreate,
    EmbeddingOptions,
    EmbeddingUpdate,
)
from careercompass.schemas.search import SimilaritySearchOptions

logger = logging.getLogger(__name__)

# Fields copied verbatim from an update patch
_PLAIN_UPDATE_FIELDS = ("text", "title", "summary", "readability_score", "expires_at")
_REQUIRED_UPDATE_FIELDS = ("keywords", "language", "model", "status")


class EmbeddingRepository:
    """
    Repository for embedding database operations.

    Every write method commits its own unit of work and rolls back before
    propagating an error, so a failed write never leaves a partial record.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # --- Construction ---

    @staticmethod
    def build_embedding(
        content: ContentData,
        vector: Sequence[float],
        options: Optional[EmbeddingOptions] = None,
    ) -> Embedding:
        """
        Build (but do not persist) an Embedding from content and vector.

        Search metadata starts from {boost: 1.0, tags: [], priority: medium}
        and caller overrides are merged on top.

        Raises:
            ValidationError: If text, vector or bounded fields are invalid
        """
        options = options or EmbeddingOptions()

        search_metadata = {"boost": 1.0, "tags": [], "priority": Priority.MEDIUM}
        search_metadata.update(options.search_metadata.model_dump(exclude_none=True))

        chunk = options.chunk
        semantics = options.semantics

        embedding = Embedding(
            content_id=content.content_id,
            content_type=content.content_type,
            document_ref_id=content.document_ref,
            user_id=content.user_id,
            text=content.text,
            title=content.title,
            summary=content.summary,
            keywords=list(content.keywords),
            language=content.language or "en",
            vector=list(vector),
            model=options.model or settings.default_embedding_model,
            embedded_at=utcnow(),
            chunk_index=chunk.index,
            chunk_total=chunk.total,
            chunk_start=chunk.start_position,
            chunk_end=chunk.end_position,
            chunk_overlap=chunk.overlap,
            topics=list(semantics.topics),
            entities=list(semantics.entities),
            sentiment=semantics.sentiment,
            confidence=semantics.confidence,
            categories=list(semantics.categories),
            boost=search_metadata["boost"],
            tags=list(search_metadata["tags"]),
            priority=search_metadata["priority"],
            access_count=0,
            version=1,
            status=EmbeddingStatus.ACTIVE,
            expires_at=to_naive_utc(options.expires_at),
        )
        embedding.check_invariants()
        return embedding

    # --- Create ---

    async def create_embedding(
        self,
        content: ContentData,
        vector: Sequence[float],
        options: Optional[EmbeddingOptions] = None,
    ) -> Embedding:
        """
        Create and store a new embedding.

        Args:
            content: Content identity and snapshot
            vector: Embedding vector (1..1536 floats)
            options: Model, chunk, semantics, search metadata and expiry

        Returns:
            Created Embedding instance

        Raises:
            ValidationError: If the input is malformed
            ConflictError: If (content_id, content_type) already exists
        """
        embedding = self.build_embedding(content, vector, options)
        self.db.add(embedding)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(content.content_id, content.content_type.value)
        except DataError as e:
            await self.db.rollback()
            raise ValidationError(f"Embedding rejected by the database: {e.orig}")
        return embedding

    async def batch_create(self, items: Sequence[EmbeddingCreate]) -> BatchCreateResult:
        """
        Insert many embeddings, best effort and unordered.

        Invalid or duplicate items are reported and skipped; the remaining
        items are still inserted.

        Returns:
            BatchCreateResult with one BatchItemResult per input item
        """
        results: Dict[int, BatchItemResult] = {}
        pending: List[Tuple[int, Embedding]] = []
        seen: Set[Tuple[str, ContentType]] = set()

        for index, item in enumerate(items):
            key = (item.content.content_id, item.content.content_type)
            try:
                embedding = self.build_embedding(item.content, item.vector, item.options)
            except ValidationError as e:
                results[index] = _failure(index, item.content.content_id, e)
                continue

            if key in seen:
                results[index] = _failure(
                    index,
                    item.content.content_id,
                    ConflictError(key[0], key[1].value),
                )
                continue
            seen.add(key)
            pending.append((index, embedding))

        existing = await self._existing_keys([key for key in seen])
        to_insert: List[Tuple[int, Embedding]] = []
        for index, embedding in pending:
            key = (embedding.content_id, ContentType(embedding.content_type))
            if key in existing:
                results[index] = _failure(
                    index,
                    embedding.content_id,
                    ConflictError(key[0], key[1].value),
                )
            else:
                to_insert.append((index, embedding))

        if to_insert:
            self.db.add_all([embedding for _, embedding in to_insert])
            try:
                await self.db.commit()
                for index, embedding in to_insert:
                    results[index] = _success(index, embedding)
            except (IntegrityError, DataError):
                # A concurrent writer claimed a key or a value was refused; insert one by one
                await self.db.rollback()
                logger.warning(
                    "Batch insert failed, retrying items individually",
                    extra={"event": "embedding_batch_retry", "items": len(to_insert)},
                )
                for index, embedding in to_insert:
                    results[index] = await self._insert_one(index, embedding)

        ordered = [results[index] for index in sorted(results)]
        inserted = sum(1 for r in ordered if r.success)
        return BatchCreateResult(
            inserted=inserted,
            failed=len(ordered) - inserted,
            results=ordered,
        )

    async def _insert_one(self, index: int, embedding: Embedding) -> BatchItemResult:
        self.db.add(embedding)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return _failure(
                index,
                embedding.content_id,
                ConflictError(embedding.content_id, ContentType(embedding.content_type).value),
            )
        except DataError as e:
            await self.db.rollback()
            return _failure(
                index,
                embedding.content_id,
                ValidationError(f"Embedding rejected by the database: {e.orig}"),
            )
        return _success(index, embedding)

    async def _existing_keys(
        self, keys: Sequence[Tuple[str, ContentType]]
    ) -> Set[Tuple[str, ContentType]]:
        if not keys:
            return set()
        content_ids = sorted({content_id for content_id, _ in keys})
        result = await self.db.execute(
            select(Embedding.content_id, Embedding.content_type).where(
                Embedding.content_id.in_(content_ids)
            )
        )
        wanted = set(keys)
        return {
            (content_id, ContentType(content_type))
            for content_id, content_type in result.all()
            if (content_id, ContentType(content_type)) in wanted
        }

    # --- Read ---

    async def get(self, embedding_id: str) -> Optional[Embedding]:
        result = await self.db.execute(select(Embedding).where(Embedding.id == embedding_id))
        return result.scalar_one_or_none()

    async def get_or_raise(self, embedding_id: str) -> Embedding:
        """
        Get an embedding by id.

        Raises:
            NotFoundError: If no embedding has this id
        """
        embedding = await self.get(embedding_id)
        if embedding is None:
            raise NotFoundError(f"Embedding {embedding_id} not found", resource_id=embedding_id)
        return embedding

    async def get_by_content(self, content_id: str, content_type: ContentType) -> Optional[Embedding]:
        result = await self.db.execute(
            select(Embedding).where(
                Embedding.content_id == content_id,
                Embedding.content_type == content_type,
            )
        )
        return result.scalar_one_or_none()

    async def find_candidates(
        self,
        options: SimilaritySearchOptions,
        limit: Optional[int] = None,
    ) -> List[Embedding]:
        """
        Fetch active search candidates matching the query filters.

        Candidates come back in insertion order (created_at, then id).
        With limit=None the whole filtered set is returned.
        """
        query = select(Embedding).where(Embedding.status == EmbeddingStatus.ACTIVE)

        if options.content_types:
            query = query.where(Embedding.content_type.in_(options.content_types))
        if options.user_id:
            query = query.where(Embedding.user_id == options.user_id)
        if options.exclude_ids:
            query = query.where(Embedding.id.not_in(options.exclude_ids))

        query = query.order_by(Embedding.created_at, Embedding.id)
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count(self, status: Optional[EmbeddingStatus] = None) -> int:
        query = select(func.count(Embedding.id))
        if status is not None:
            query = query.where(Embedding.status == status)
        result = await self.db.execute(query)
        return result.scalar_one() or 0

    # --- Update ---

    async def update_embedding(self, embedding_id: str, patch: EmbeddingUpdate) -> Embedding:
        """
        Apply a partial update.

        Writes touching text recompute the quality metrics; writes touching
        the vector recompute dimensions and bump the version.

        Raises:
            NotFoundError: If the embedding does not exist
            ValidationError: If the patched record is invalid
        """
        embedding = await self.get_or_raise(embedding_id)
        changes = patch.model_dump(exclude_unset=True)

        try:
            for field in _REQUIRED_UPDATE_FIELDS:
                if field in changes and changes[field] is None:
                    raise ValidationError(f"{field} cannot be null", field=field)

            for field in _PLAIN_UPDATE_FIELDS + _REQUIRED_UPDATE_FIELDS:
                if field in changes:
                    value = changes[field]
                    if field == "expires_at":
                        value = to_naive_utc(value)
                    setattr(embedding, field, value)

            if "vector" in changes:
                embedding.vector = changes["vector"]
                embedding.embedded_at = utcnow()
                embedding.version = (embedding.version or 1) + 1

            if patch.chunk is not None:
                embedding.chunk_index = patch.chunk.index
                embedding.chunk_total = patch.chunk.total
                embedding.chunk_start = patch.chunk.start_position
                embedding.chunk_end = patch.chunk.end_position
                embedding.chunk_overlap = patch.chunk.overlap

            if patch.semantics is not None:
                embedding.topics = list(patch.semantics.topics)
                embedding.entities = list(patch.semantics.entities)
                embedding.sentiment = patch.semantics.sentiment
                embedding.confidence = patch.semantics.confidence
                embedding.categories = list(patch.semantics.categories)

            if patch.search_metadata is not None:
                overrides = patch.search_metadata.model_dump(exclude_none=True)
                if "boost" in overrides:
                    embedding.boost = overrides["boost"]
                if "tags" in overrides:
                    embedding.tags = list(overrides["tags"])
                if "priority" in overrides:
                    embedding.priority = overrides["priority"]

            embedding.check_invariants()
        except ValidationError:
            await self.db.rollback()
            raise

        await self.db.commit()
        return embedding

    async def track_access(self, embedding_ids: Sequence[str]) -> int:
        """
        Record a retrieval of the given embeddings.

        A single atomic UPDATE increments access_count and stamps
        last_accessed; the rows are not re-validated.

        Returns:
            Number of rows updated
        """
        if not embedding_ids:
            return 0

        now = utcnow()
        result = await self.db.execute(
            update(Embedding)
            .where(Embedding.id.in_(list(embedding_ids)))
            .values(
                access_count=Embedding.access_count + 1,
                last_accessed=now,
                updated_at=now,
            )
            .execution_options(synchronize_session="evaluate")
        )
        await self.db.commit()
        return result.rowcount

    async def mark_outdated(self, embedding_id: str) -> Embedding:
        """
        Mark an embedding as outdated, removing it from search results.

        Raises:
            NotFoundError: If the embedding does not exist
        """
        embedding = await self.get_or_raise(embedding_id)
        embedding.status = EmbeddingStatus.OUTDATED
        await self.db.commit()
        return embedding

    # --- Maintenance ---

    async def cleanup(
        self,
        options: Optional[CleanupOptions] = None,
        now: Optional[datetime] = None,
    ) -> CleanupResult:
        """
        Delete (or, in dry-run mode, count) stale embeddings.

        Matches rows whose status equals options.status and whose
        updated_at is older than options.older_than_days.
        """
        options = options or CleanupOptions()
        cutoff = (now or utcnow()) - timedelta(days=options.older_than_days)
        criteria = (
            Embedding.status == options.status,
            Embedding.updated_at < cutoff,
        )

        result = await self.db.execute(select(func.count(Embedding.id)).where(*criteria))
        matched = result.scalar_one() or 0

        if options.dry_run:
            return CleanupResult(dry_run=True, matched=matched, deleted=0, cutoff=cutoff)

        result = await self.db.execute(
            delete(Embedding).where(*criteria).execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return CleanupResult(dry_run=False, matched=matched, deleted=result.rowcount, cutoff=cutoff)

    async def delete_expired(self, now: Optional[datetime] = None) -> int:
        """
        Delete every embedding whose expires_at has passed.

        Returns:
            Number of rows deleted
        """
        now = now or utcnow()
        result = await self.db.execute(
            delete(Embedding)
            .where(Embedding.expires_at.is_not(None), Embedding.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount


def _success(index: int, embedding: Embedding) -> BatchItemResult:
    return BatchItemResult(
        index=index,
        success=True,
        id=embedding.id,
        content_id=embedding.content_id,
    )


def _failure(index: int, content_id: str, error: Exception) -> BatchItemResult:
    return BatchItemResult(
        index=index,
        success=False,
        content_id=content_id,
        error=str(error),
        error_type=type(error).__name__,
    )
