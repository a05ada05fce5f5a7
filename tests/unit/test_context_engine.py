"""Unit tests for the context engine pipeline."""

import json
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from squire.context.engine import ContextEngine
from squire.context.evidence import EvidenceAggregator
from squire.context.formatter import render
from squire.core.config import Settings
from squire.core.domain.context import (
    EntityMention,
    LivingSummary,
    Note,
    OutputFormat,
    Tier,
)
from squire.core.errors import AuditError, ConfigurationError, RetrievalError
from tests.fakes import (
    NOW,
    FakeCandidateRetriever,
    FakeDisclosureStore,
    FakeDocumentSearch,
    FakeEmbeddingProvider,
    FakeEntityLookup,
    FakeListSearch,
    FakeNoteSearch,
    FakeProfileStore,
    FakeSummaryProvider,
    make_candidate,
    make_profile,
)


def default_candidates():
    return [
        make_candidate("a", salience=9.0, similarity=None, content="Moved to Lisbon in 2019."),
        make_candidate("b", salience=5.0, similarity=0.5, content="Sarah's birthday is in March."),
        make_candidate("c", salience=5.0, similarity=0.1, content="Bought new running shoes."),
    ]


@pytest.mark.asyncio
class TestContextEngine:
    """Test cases for ContextEngine.assemble and friends."""

    def setup_method(self):
        self.config = Settings(_env_file=None)
        self.profiles = FakeProfileStore([make_profile()])
        self.embedder = FakeEmbeddingProvider()
        self.retriever = FakeCandidateRetriever(default_candidates())
        self.summaries = FakeSummaryProvider(
            [LivingSummary(id="s1", label="family", category="family", content="Close to Sarah.")]
        )
        self.entities = FakeEntityLookup(
            [EntityMention(id="e1", label="Sarah", content="Sarah", entity_type="person")]
        )
        self.notes = FakeNoteSearch(
            matches=[Note(id="n1", label="Gift ideas", content="Pottery class", similarity=0.6)]
        )
        self.lists = FakeListSearch()
        self.documents = FakeDocumentSearch()
        self.disclosures = FakeDisclosureStore()

    def build_engine(self) -> ContextEngine:
        evidence = EvidenceAggregator(
            summaries=self.summaries,
            entities=self.entities,
            notes=self.notes,
            lists=self.lists,
            documents=self.documents,
            config=self.config,
        )
        return ContextEngine(
            profiles=self.profiles,
            embedding_provider=self.embedder,
            retriever=self.retriever,
            evidence=evidence,
            disclosures=self.disclosures,
            config=self.config,
            clock=lambda: NOW,
        )

    async def test_basic_selection(self):
        """Every tier gets its item and the package is ordered by score."""
        package = await self.build_engine().assemble("general", query="birthday present for Sarah")

        assert [m.id for m in package.memories] == ["a", "b", "c"]
        assert [m.tier for m in package.memories] == [Tier.HIGH_SALIENCE, Tier.RELEVANT, Tier.RECENT]
        assert package.token_count == sum(m.token_estimate for m in package.memories)
        assert package.profile == "general"
        assert package.query == "birthday present for Sarah"
        assert package.generated_at == NOW

    async def test_package_contains_evidence_and_narrative(self):
        package = await self.build_engine().assemble("general", query="birthday")

        assert [s.category for s in package.summaries] == ["family"]
        assert [e.label for e in package.entities] == ["Sarah"]
        assert [n.id for n in package.notes] == ["n1"]
        assert "Moved to Lisbon in 2019." in package.narrative
        assert "### Gift ideas" in package.narrative
        assert package.structured["disclosure_id"] == package.disclosure_id
        assert package.degraded_sources == []

    async def test_disclosure_matches_package(self):
        package = await self.build_engine().assemble(
            "general", query="birthday", conversation_id="conv-7"
        )

        assert len(self.disclosures.records) == 1
        record = self.disclosures.records[0]
        assert record.id == package.disclosure_id
        assert record.disclosed_item_ids == [m.id for m in package.memories]
        assert record.item_count == len(package.memories)
        assert record.token_count == package.token_count
        assert record.conversation_id == "conv-7"
        assert record.query == "birthday"
        assert record.profile_name == "general"
        assert record.created_at == package.generated_at == NOW

    async def test_empty_memory_store(self):
        """An empty store still produces an audited, empty package."""
        self.retriever = FakeCandidateRetriever([])
        self.summaries = FakeSummaryProvider([])

        package = await self.build_engine().assemble("general")

        assert package.memories == []
        assert package.token_count == 0
        assert len(self.disclosures.records) == 1
        assert self.disclosures.records[0].item_count == 0
        assert self.entities.requested == []

    async def test_optional_source_failure_degrades(self):
        """A failing note search leaves notes empty but the call succeeds."""
        self.notes = FakeNoteSearch(fail_search=True)

        package = await self.build_engine().assemble("general", query="birthday")

        assert package.notes == []
        assert package.degraded_sources == ["notes"]
        assert len(package.memories) == 3
        assert len(self.disclosures.records) == 1

    async def test_unknown_profile_without_default(self):
        """No usable profile is a configuration error and nothing is audited."""
        self.profiles = FakeProfileStore([make_profile(name="work", is_default=False)])

        with pytest.raises(ConfigurationError):
            await self.build_engine().assemble("nonexistent")

        assert self.disclosures.records == []
        assert self.retriever.queries == []

    async def test_unknown_profile_falls_back_to_default(self):
        package = await self.build_engine().assemble("nonexistent")

        assert package.profile == "general"
        assert self.profiles.calls == ["nonexistent", "<default>"]

    async def test_missing_profile_name_uses_default(self):
        package = await self.build_engine().assemble()

        assert package.profile == "general"
        assert self.profiles.calls == ["<default>"]

    async def test_no_query_skips_embedding_and_searches(self):
        package = await self.build_engine().assemble("general", query="   ")

        assert package.query is None
        assert self.embedder.texts == []
        assert self.retriever.queries[0].embedding is None
        assert self.notes.searches == []

    async def test_candidate_query_parameters(self):
        self.profiles = FakeProfileStore(
            [make_profile(min_salience=2.0, min_strength=0.3, lookback_days=14)]
        )

        await self.build_engine().assemble("general", query="  running  ")

        assert self.embedder.texts == ["running"]
        query = self.retriever.queries[0]
        assert query.embedding == [0.1, 0.2, 0.3]
        assert query.min_salience == 2.0
        assert query.min_strength == 0.3
        assert query.similarity_threshold == 0.25
        assert query.salience_bypass == 6.0
        assert query.since == NOW - timedelta(days=14)
        assert query.excluded_mode == "meta_ai"
        assert query.limit == 100

    async def test_story_profile_uses_relaxed_threshold(self):
        self.profiles = FakeProfileStore([make_profile(name="personal-story")])

        await self.build_engine().assemble("personal-story", query="childhood")

        assert self.retriever.queries[0].similarity_threshold == 0.15

    async def test_candidates_capped_at_limit(self):
        self.config = Settings(_env_file=None, candidate_limit=2)

        package = await self.build_engine().assemble("general", query="x")

        assert len(package.memories) == 2

    async def test_max_tokens_overrides_profile(self):
        package = await self.build_engine().assemble("general", query="x", max_tokens=100)

        # 50/30/20 ceilings against 40-token memories
        assert [m.id for m in package.memories] == ["a"]
        assert package.structured["budget"]["relevant"]["rejected"] == 1

    async def test_deterministic_for_fixed_inputs(self):
        engine = self.build_engine()

        first = await engine.assemble("general", query="birthday")
        second = await engine.assemble("general", query="birthday")

        assert [m.model_dump() for m in first.memories] == [m.model_dump() for m in second.memories]
        assert first.narrative == second.narrative
        assert first.disclosure_id != second.disclosure_id

    async def test_embedding_failure_raises_retrieval_error(self):
        self.embedder = FakeEmbeddingProvider(fail=True)

        with pytest.raises(RetrievalError):
            await self.build_engine().assemble("general", query="birthday")

        assert self.disclosures.records == []

    async def test_retrieval_failure_raises_retrieval_error(self):
        self.retriever = FakeCandidateRetriever(fail=True)

        with pytest.raises(RetrievalError) as exc_info:
            await self.build_engine().assemble("general")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert self.disclosures.records == []

    async def test_summary_failure_propagates(self):
        self.summaries = FakeSummaryProvider(fail=True)

        with pytest.raises(RuntimeError):
            await self.build_engine().assemble("general")

        assert self.disclosures.records == []

    async def test_audit_failure_returns_no_package(self):
        self.disclosures = FakeDisclosureStore(fail=True)

        with pytest.raises(AuditError):
            await self.build_engine().assemble("general", query="birthday")

    async def test_plain_profile_renders_without_markdown(self):
        self.profiles = FakeProfileStore([make_profile(format=OutputFormat.PLAIN)])

        package = await self.build_engine().assemble("general", query="birthday")

        assert "#" not in package.narrative
        assert "RELEVANT CONTEXT" in package.narrative

    async def test_json_profile_renders_structured(self):
        self.profiles = FakeProfileStore([make_profile(format=OutputFormat.JSON)])

        package = await self.build_engine().assemble("general", query="birthday")
        tree = json.loads(render(package))

        assert tree["format"] == "json"
        assert [m["id"] for m in tree["memories"]] == ["a", "b", "c"]

    async def test_get_disclosure_log(self):
        engine = self.build_engine()
        await engine.assemble("general", conversation_id="c1")
        await engine.assemble("general", conversation_id="c2")

        records = await engine.get_disclosure_log()
        filtered = await engine.get_disclosure_log(conversation_id="c1")

        assert [r.conversation_id for r in records] == ["c2", "c1"]
        assert [r.conversation_id for r in filtered] == ["c1"]
        assert len(await engine.get_disclosure_log(limit=1)) == 1
        assert await engine.get_disclosure_log(limit=0) == []

    async def test_list_profiles(self):
        self.profiles = FakeProfileStore(
            [make_profile(name="work", is_default=False), make_profile(name="general")]
        )

        profiles = await self.build_engine().list_profiles()

        assert [p.name for p in profiles] == ["general", "work"]

    async def test_close_releases_embedding_provider(self):
        self.embedder.close = AsyncMock()

        await self.build_engine().close()

        self.embedder.close.assert_awaited_once()
