"""
Pydantic schemas for embedding ingestion, update and maintenance endpoints.

Input bounds on text, vector and string lengths are enforced by the store (see
careercompass.models.embedding), not here, so direct callers and HTTP
callers get the same ValidationError.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from careercompass.models.embedding import (
    ContentType,
    Embedding,
    EmbeddingStatus,
    Priority,
    Sentiment,
)


class ContentData(BaseModel):
    """Content snapshot and identity of the text being embedded."""
    content_id: str = Field(..., min_length=1, description="Identifier of the content (or chunk)")
    content_type: ContentType
    document_ref: Optional[str] = Field(None, description="Id of the source document, resolved via content_type")
    user_id: Optional[str] = Field(None, description="Owner of the content")
    text: str
    title: Optional[str] = None
    summary: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    language: str = "en"


class ChunkInfo(BaseModel):
    """Position of a chunk within its parent document."""
    index: int = 0
    total: int = 1
    start_position: Optional[int] = None
    end_position: Optional[int] = None
    overlap: Optional[int] = None


class Semantics(BaseModel):
    """Semantic annotations produced upstream."""
    topics: List[str] = Field(default_factory=list)
    entities: List[str] = Field(default_factory=list)
    sentiment: Optional[Sentiment] = None
    confidence: Optional[float] = None
    categories: List[str] = Field(default_factory=list)


class SearchMetadataOverrides(BaseModel):
    """Caller overrides merged over the search metadata defaults."""
    boost: Optional[float] = None
    tags: Optional[List[str]] = None
    priority: Optional[Priority] = None


class EmbeddingOptions(BaseModel):
    """Options for creating an embedding."""
    model: Optional[str] = Field(None, description="Embedding model name (defaults to the configured model)")
    chunk: ChunkInfo = Field(default_factory=ChunkInfo)
    semantics: Semantics = Field(default_factory=Semantics)
    search_metadata: SearchMetadataOverrides = Field(default_factory=SearchMetadataOverrides)
    expires_at: Optional[datetime] = Field(None, description="Record is deleted by the expiry sweep after this instant")


class EmbeddingCreate(BaseModel):
    """Schema for creating a single embedding."""
    content: ContentData
    vector: List[float]
    options: EmbeddingOptions = Field(default_factory=EmbeddingOptions)


class EmbeddingBatchCreate(BaseModel):
    """Schema for creating many embeddings in one call."""
    items: List[EmbeddingCreate] = Field(..., min_length=1, max_length=1000)


class EmbeddingUpdate(BaseModel):
    """Partial update. Only fields explicitly set are applied."""
    text: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    keywords: Optional[List[str]] = None
    language: Optional[str] = None
    vector: Optional[List[float]] = None
    model: Optional[str] = None
    chunk: Optional[ChunkInfo] = None
    semantics: Optional[Semantics] = None
    search_metadata: Optional[SearchMetadataOverrides] = None
    readability_score: Optional[float] = None
    status: Optional[EmbeddingStatus] = None
    expires_at: Optional[datetime] = None


# Response schemas, nested the way the record groups its fields

class ContentSnapshot(BaseModel):
    text: str
    title: Optional[str] = None
    summary: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    language: str = "en"


class VectorInfo(BaseModel):
    vector: Optional[List[float]] = None
    model: str
    dimensions: int
    created_at: Optional[datetime] = None


class SearchMetadata(BaseModel):
    boost: float
    tags: List[str] = Field(default_factory=list)
    priority: Priority
    last_accessed: Optional[datetime] = None
    access_count: int = 0


class QualityMetrics(BaseModel):
    text_length: Optional[int] = None
    unique_words: Optional[int] = None
    readability_score: Optional[float] = None
    information_density: Optional[float] = None


class EmbeddingResponse(BaseModel):
    """Schema for an embedding record."""
    id: str
    content_id: str
    content_type: ContentType
    document_ref: Optional[str] = None
    user_id: Optional[str] = None
    chunk_key: str
    content: ContentSnapshot
    embedding: VectorInfo
    chunk: ChunkInfo
    semantics: Semantics
    search_metadata: SearchMetadata
    quality: QualityMetrics
    version: int
    status: EmbeddingStatus
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Embedding, include_vector: bool = True) -> "EmbeddingResponse":
        """Build the nested response from a flat Embedding row."""
        return cls(
            id=record.id,
            content_id=record.content_id,
            content_type=record.content_type,
            document_ref=record.document_ref_id,
            user_id=record.user_id,
            chunk_key=record.chunk_key,
            content=ContentSnapshot(
                text=record.text,
                title=record.title,
                summary=record.summary,
                keywords=record.keywords or [],
                language=record.language or "en",
            ),
            embedding=VectorInfo(
                vector=list(record.vector) if include_vector else None,
                model=record.model,
                dimensions=record.dimensions,
                created_at=record.embedded_at,
            ),
            chunk=ChunkInfo(
                index=record.chunk_index,
                total=record.chunk_total,
                start_position=record.chunk_start,
                end_position=record.chunk_end,
                overlap=record.chunk_overlap,
            ),
            semantics=Semantics(
                topics=record.topics or [],
                entities=record.entities or [],
                sentiment=record.sentiment,
                confidence=record.confidence,
                categories=record.categories or [],
            ),
            search_metadata=SearchMetadata(
                boost=record.boost,
                tags=record.tags or [],
                priority=record.priority,
                last_accessed=record.last_accessed,
                access_count=record.access_count or 0,
            ),
            quality=QualityMetrics(
                text_length=record.text_length,
                unique_words=record.unique_words,
                readability_score=record.readability_score,
                information_density=record.information_density,
            ),
            version=record.version,
            status=record.status,
            expires_at=record.expires_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class BatchItemResult(BaseModel):
    """Outcome of one item of a batch create."""
    index: int
    success: bool
    id: Optional[str] = None
    content_id: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class BatchCreateResult(BaseModel):
    """Per-item outcome of a best-effort batch create."""
    inserted: int
    failed: int
    results: List[BatchItemResult]


class CleanupOptions(BaseModel):
    """Retention cleanup options."""
    older_than_days: int = Field(90, ge=0)
    status: EmbeddingStatus = EmbeddingStatus.OUTDATED
    dry_run: bool = False


class CleanupResult(BaseModel):
    """Cleanup outcome. In dry-run mode nothing is deleted."""
    dry_run: bool
    matched: int
    deleted: int
    cutoff: datetime
