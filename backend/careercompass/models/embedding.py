"""
Embedding model storing one vector-indexed chunk of CareerCompass content.

The vector is kept as a JSON list and scored in application memory
(brute-force cosine similarity), so the table works on any SQLAlchemy
backend. Derived fields (dimensions, quality metrics) are maintained by
attribute validators on every write that touches text or vector.
"""
import enum
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import validates

from careercompass.exceptions import ValidationError
from careercompass.models.base import Base, generate_uuid, utcnow
from careercompass.utils.text_quality import compute_quality
from careercompass.utils.vector_math import cosine_similarity

MAX_TEXT_LENGTH = 10000
MAX_VECTOR_DIMENSIONS = 1536
DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"
MAX_BOOST = 10.0


class ContentType(str, enum.Enum):
    """Kinds of CareerCompass content that can be embedded."""
    PROFILE = "profile"
    RESUME = "resume"
    PROJECT = "project"
    CHAT_MESSAGE = "chat_message"
    TECH_UPDATE = "tech_update"
    PSYCHOTEST_RESULT = "psychotest_result"
    SKILL = "skill"
    JOB_DESCRIPTION = "job_description"


class EmbeddingStatus(str, enum.Enum):
    """Embedding lifecycle status. Only ACTIVE rows are searchable."""
    ACTIVE = "active"
    OUTDATED = "outdated"
    ARCHIVED = "archived"
    DELETED = "deleted"


class Priority(str, enum.Enum):
    """Search priority hint."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Sentiment(str, enum.Enum):
    """Sentiment label from semantic analysis."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


def _enum_column(enum_cls, name: str):
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda x: [e.value for e in x],
    )


@dataclass(frozen=True)
class DocumentRef:
    """
    Non-owning reference to the source document of an embedding.

    The content type selects which external store resolves the id.
    """
    content_type: ContentType
    id: str


class Embedding(Base):
    """
    Embedding record: content snapshot + vector + search metadata.

    One row per (content_id, content_type) pair. Large documents are split
    into chunks, each chunk being its own content_id.
    """

    __tablename__ = "embeddings"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    # Identity
    content_id = Column(String(255), nullable=False, index=True)
    content_type = Column(_enum_column(ContentType, "contenttype"), nullable=False, index=True)

    # Ownership (weak references, resolved outside this service)
    document_ref_id = Column(String(64), nullable=True, index=True)
    user_id = Column(String(64), nullable=True, index=True)

    # Content snapshot
    text = Column(Text, nullable=False)
    title = Column(String(500), nullable=True)
    summary = Column(Text, nullable=True)
    keywords = Column(JSON, nullable=False, default=list)
    language = Column(String(10), nullable=False, default="en")

    # Vector
    vector = Column(JSON, nullable=False)
    model = Column(String(100), nullable=False, default=DEFAULT_EMBEDDING_MODEL)
    dimensions = Column(Integer, nullable=False)
    embedded_at = Column(DateTime, nullable=False, default=utcnow)

    # Chunking
    chunk_index = Column(Integer, nullable=False, default=0)
    chunk_total = Column(Integer, nullable=False, default=1)
    chunk_start = Column(Integer, nullable=True)
    chunk_end = Column(Integer, nullable=True)
    chunk_overlap = Column(Integer, nullable=True)  # Characters shared with neighbours

    # Semantics
    topics = Column(JSON, nullable=False, default=list)
    entities = Column(JSON, nullable=False, default=list)
    categories = Column(JSON, nullable=False, default=list)
    sentiment = Column(_enum_column(Sentiment, "sentiment"), nullable=True)
    confidence = Column(Float, nullable=True)

    # Search metadata
    boost = Column(Float, nullable=False, default=1.0)
    tags = Column(JSON, nullable=False, default=list)
    priority = Column(_enum_column(Priority, "priority"), nullable=False, default=Priority.MEDIUM)
    last_accessed = Column(DateTime, nullable=True)
    access_count = Column(Integer, nullable=False, default=0)

    # Quality
    text_length = Column(Integer, nullable=True)
    unique_words = Column(Integer, nullable=True)
    readability_score = Column(Float, nullable=True)
    information_density = Column(Float, nullable=True)

    # Lifecycle
    version = Column(Integer, nullable=False, default=1)
    status = Column(
        _enum_column(EmbeddingStatus, "embeddingstatus"),
        nullable=False,
        default=EmbeddingStatus.ACTIVE,
        index=True,
    )
    expires_at = Column(DateTime, nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("content_id", "content_type", name="uq_embedding_content"),
        Index("idx_embedding_type_user_status", "content_type", "user_id", "status"),
        Index("idx_embedding_user_last_accessed", "user_id", "last_accessed"),
    )

    # --- Derived-field maintenance ---

    @validates("text")
    def _validate_text(self, key, value):
        if value is None or not str(value).strip():
            raise ValidationError("Content text is required", field="text")
        if len(value) > MAX_TEXT_LENGTH:
            raise ValidationError(
                f"Content text cannot exceed {MAX_TEXT_LENGTH} characters",
                field="text",
            )

        quality = compute_quality(value)
        self.text_length = quality["text_length"]
        self.unique_words = quality["unique_words"]
        self.information_density = quality["information_density"]
        return value

    @validates("content_id", "document_ref_id", "user_id", "title", "language", "model")
    def _validate_bounded_string(self, key, value):
        # Bounds come from the String(n) column so every backend rejects alike
        max_length = self.__table__.c[key].type.length
        if value is not None and len(value) > max_length:
            raise ValidationError(
                f"{key} cannot exceed {max_length} characters",
                field=key,
            )
        return value

    @validates("vector")
    def _validate_vector(self, key, value):
        if value is None or len(value) == 0 or len(value) > MAX_VECTOR_DIMENSIONS:
            raise ValidationError(
                f"Embedding vector must be non-empty and not exceed {MAX_VECTOR_DIMENSIONS} dimensions",
                field="vector",
            )

        try:
            floats = [float(x) for x in value]
        except (TypeError, ValueError):
            raise ValidationError("Embedding vector must contain only numbers", field="vector")
        if not all(math.isfinite(x) for x in floats):
            raise ValidationError("Embedding vector must contain only finite numbers", field="vector")

        self.dimensions = len(floats)
        return floats

    def check_invariants(self) -> None:
        """
        Validate cross-field invariants before the row is written.

        Raises:
            ValidationError: If chunk position, boost, confidence or
                access count are out of range
        """
        chunk_index = 0 if self.chunk_index is None else self.chunk_index
        chunk_total = 1 if self.chunk_total is None else self.chunk_total
        if chunk_total < 1 or not 0 <= chunk_index < chunk_total:
            raise ValidationError(
                f"Chunk index {chunk_index} out of range for {chunk_total} chunk(s)",
                field="chunk",
            )

        if self.boost is not None and not 0.0 <= self.boost <= MAX_BOOST:
            raise ValidationError(f"Boost must be between 0 and {MAX_BOOST}", field="boost")

        if self.confidence is not None and not 0.0 <= self.confidence <= 1.0:
            raise ValidationError("Confidence must be between 0 and 1", field="confidence")

        if self.access_count is not None and self.access_count < 0:
            raise ValidationError("Access count cannot be negative", field="access_count")

    # --- Read helpers ---

    @property
    def document_ref(self) -> Optional[DocumentRef]:
        if not self.document_ref_id:
            return None
        return DocumentRef(content_type=ContentType(self.content_type), id=self.document_ref_id)

    @property
    def chunk_key(self) -> str:
        """Stable identifier of this chunk within its parent content."""
        return f"{self.content_id}_chunk_{self.chunk_index or 0}"

    @property
    def age(self) -> Optional[timedelta]:
        """Time elapsed since the vector was computed."""
        if self.embedded_at is None:
            return None
        return utcnow() - self.embedded_at

    def cosine_similarity(self, other: "Embedding") -> float:
        """
        Cosine similarity between this record's vector and another's.

        Returns 0.0 when the other record has no vector.
        """
        if other is None or not other.vector:
            return 0.0
        return cosine_similarity(self.vector, other.vector)

    def __repr__(self):
        return (
            f"<Embedding(id={self.id}, content_id={self.content_id}, "
            f"content_type={self.content_type}, status={self.status})>"
        )
