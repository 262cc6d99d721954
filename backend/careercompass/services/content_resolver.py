"""
Resolution of embedding document references into content projections.

An embedding's document_ref points into an external store chosen by its
content type. Each content type gets its own resolver; the registry
batches lookups so every resolver is called at most once per search.
"""
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional

from sqlalchemy import column, select, table
from sqlalchemy.ext.asyncio import AsyncSession

from careercompass.models.embedding import ContentType, DocumentRef
from careercompass.schemas.search import ContentProjection

logger = logging.getLogger(__name__)

PROJECTION_FIELDS = ("title", "description", "content", "summary")


class ContentResolver(ABC):
    """
    Abstract base class for content resolvers.

    A resolver knows how to load source documents of one content type.
    """

    @abstractmethod
    async def fetch(self, ids: List[str]) -> Dict[str, ContentProjection]:
        """
        Load projections for the given document ids.

        Args:
            ids: Document ids of a single content type

        Returns:
            Mapping of id to projection; ids that do not exist are omitted
        """
        pass


class InMemoryContentResolver(ContentResolver):
    """Resolver backed by a mapping of id to document fields."""

    def __init__(self, documents: Optional[Mapping[str, Mapping]] = None):
        self._documents: Dict[str, Mapping] = dict(documents or {})

    def add(self, document_id: str, **fields) -> None:
        self._documents[document_id] = fields

    async def fetch(self, ids: List[str]) -> Dict[str, ContentProjection]:
        return {
            doc_id: _project(self._documents[doc_id])
            for doc_id in ids
            if doc_id in self._documents
        }


class TableContentResolver(ContentResolver):
    """
    Resolver reading projections from a table in the same database.

    Only the projection columns present on the table are selected.
    """

    def __init__(
        self,
        db: AsyncSession,
        table_name: str,
        columns: Iterable[str] = PROJECTION_FIELDS,
        id_column: str = "id",
    ):
        self.db = db
        self.columns = [name for name in columns if name in PROJECTION_FIELDS]
        self.id_column = id_column
        self._table = table(table_name, column(id_column), *[column(name) for name in self.columns])

    async def fetch(self, ids: List[str]) -> Dict[str, ContentProjection]:
        if not ids:
            return {}
        id_col = self._table.c[self.id_column]
        query = select(id_col, *[self._table.c[name] for name in self.columns]).where(id_col.in_(ids))
        result = await self.db.execute(query)
        projections = {}
        for row in result.mappings():
            projections[str(row[self.id_column])] = _project(row)
        return projections


class ContentResolverRegistry:
    """Maps content types to resolvers and batch-resolves references."""

    def __init__(self, resolvers: Optional[Mapping[ContentType, ContentResolver]] = None):
        self._resolvers: Dict[ContentType, ContentResolver] = dict(resolvers or {})

    def register(self, content_type: ContentType, resolver: ContentResolver) -> None:
        self._resolvers[ContentType(content_type)] = resolver

    def get(self, content_type: ContentType) -> Optional[ContentResolver]:
        return self._resolvers.get(ContentType(content_type))

    async def resolve_many(
        self, refs: Iterable[Optional[DocumentRef]]
    ) -> Dict[DocumentRef, ContentProjection]:
        """
        Resolve many references, one fetch per content type.

        References with no registered resolver, or whose document is
        missing, are absent from the result.
        """
        by_type: Dict[ContentType, List[str]] = defaultdict(list)
        for ref in refs:
            if ref is None:
                continue
            if ref.id not in by_type[ref.content_type]:
                by_type[ref.content_type].append(ref.id)

        resolved: Dict[DocumentRef, ContentProjection] = {}
        for content_type, ids in by_type.items():
            resolver = self._resolvers.get(content_type)
            if resolver is None:
                logger.debug(f"No content resolver registered for {content_type.value}")
                continue
            projections = await resolver.fetch(ids)
            for doc_id, projection in projections.items():
                resolved[DocumentRef(content_type=content_type, id=doc_id)] = projection
        return resolved


def _project(document: Mapping) -> ContentProjection:
    return ContentProjection(**{name: document.get(name) for name in PROJECTION_FIELDS})
