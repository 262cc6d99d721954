"""
Tests for content resolvers and the resolver registry.
"""
import pytest
from typing import Dict, List
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from careercompass.models.embedding import ContentType, DocumentRef
from careercompass.schemas.search import ContentProjection
from careercompass.services.content_resolver import (
    ContentResolver,
    ContentResolverRegistry,
    InMemoryContentResolver,
    TableContentResolver,
)


class RecordingResolver(ContentResolver):
    """Resolver that records every fetch call."""

    def __init__(self):
        self.calls: List[List[str]] = []

    async def fetch(self, ids: List[str]) -> Dict[str, ContentProjection]:
        self.calls.append(list(ids))
        return {doc_id: ContentProjection(title=f"title-{doc_id}") for doc_id in ids}


class TestInMemoryContentResolver:
    """Tests for InMemoryContentResolver."""

    @pytest.mark.asyncio
    async def test_fetch_known_ids(self):
        """Test known ids are projected and unknown ids omitted."""
        resolver = InMemoryContentResolver({"p1": {"title": "Profile", "content": "Bio", "extra": "ignored"}})
        resolver.add("p2", description="Second")

        projections = await resolver.fetch(["p1", "p2", "missing"])

        assert set(projections) == {"p1", "p2"}
        assert projections["p1"] == ContentProjection(title="Profile", content="Bio")
        assert projections["p2"].description == "Second"


class TestTableContentResolver:
    """Tests for TableContentResolver."""

    @pytest.mark.asyncio
    async def test_fetch_from_table(self, db_session: AsyncSession):
        """Test projections are read from an external table."""
        await db_session.execute(text(
            "CREATE TABLE projects (id VARCHAR(36) PRIMARY KEY, title VARCHAR(200), description TEXT)"
        ))
        await db_session.execute(text(
            "INSERT INTO projects (id, title, description) VALUES "
            "('pr-1', 'Compiler', 'Toy compiler in Python'), ('pr-2', 'Crawler', NULL)"
        ))
        await db_session.commit()

        resolver = TableContentResolver(db_session, "projects", columns=("title", "description"))
        projections = await resolver.fetch(["pr-1", "pr-2", "pr-3"])

        assert set(projections) == {"pr-1", "pr-2"}
        assert projections["pr-1"].title == "Compiler"
        assert projections["pr-1"].description == "Toy compiler in Python"
        assert projections["pr-1"].summary is None
        assert projections["pr-2"].description is None

    @pytest.mark.asyncio
    async def test_fetch_empty(self, db_session: AsyncSession):
        """Test an empty id list skips the query."""
        resolver = TableContentResolver(db_session, "does_not_exist")
        assert await resolver.fetch([]) == {}


class TestContentResolverRegistry:
    """Tests for ContentResolverRegistry."""

    @pytest.mark.asyncio
    async def test_resolve_many_batches_by_type(self):
        """Test each resolver is called once with deduplicated ids."""
        profiles = RecordingResolver()
        skills = RecordingResolver()
        registry = ContentResolverRegistry()
        registry.register(ContentType.PROFILE, profiles)
        registry.register(ContentType.SKILL, skills)

        refs = [
            DocumentRef(ContentType.PROFILE, "a"),
            DocumentRef(ContentType.SKILL, "s"),
            DocumentRef(ContentType.PROFILE, "b"),
            DocumentRef(ContentType.PROFILE, "a"),
            None,
        ]
        resolved = await registry.resolve_many(refs)

        assert profiles.calls == [["a", "b"]]
        assert skills.calls == [["s"]]
        assert resolved[DocumentRef(ContentType.PROFILE, "b")].title == "title-b"
        assert len(resolved) == 3

    @pytest.mark.asyncio
    async def test_unregistered_type_is_skipped(self):
        """Test references without a resolver are absent from the result."""
        registry = ContentResolverRegistry()

        resolved = await registry.resolve_many([DocumentRef(ContentType.RESUME, "r1")])

        assert resolved == {}
        assert registry.get(ContentType.RESUME) is None

    def test_register_accepts_string_type(self):
        """Test content types may be given by value."""
        resolver = InMemoryContentResolver()
        registry = ContentResolverRegistry()
        registry.register("skill", resolver)

        assert registry.get(ContentType.SKILL) is resolver
