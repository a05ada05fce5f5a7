"""Context Engine - per-request context assembly.

Each call runs a linear pipeline:

    resolve profile -> embed query -> retrieve candidates -> score and
    categorize -> allocate budget -> aggregate evidence -> log disclosure ->
    format

Every stage is fatal on failure except the optional evidence sources, which
degrade inside the aggregator. No state is shared between calls beyond
references to the external collaborators.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from ..core.config import Settings, settings as default_settings
from ..core.domain.context import (
    CandidateItem,
    CandidateQuery,
    ContextPackage,
    DisclosureRecord,
    OutputFormat,
    Profile,
)
from ..core.embeddings.base import EmbeddingProvider
from ..core.errors import ConfigurationError, RetrievalError
from .budget import allocate
from .disclosure import DisclosureLogger
from .evidence import EvidenceAggregator
from .formatter import ContextFormatter
from .scoring import score_items
from .sources import CandidateRetriever, DisclosureStore, ProfileStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContextEngine:
    """Selects, scores, budgets and packages memories for a downstream model."""

    def __init__(
        self,
        profiles: ProfileStore,
        embedding_provider: EmbeddingProvider,
        retriever: CandidateRetriever,
        evidence: EvidenceAggregator,
        disclosures: DisclosureStore,
        config: Settings | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """Initialize the context engine.

        Args:
            profiles: Profile store, owned and cached by the caller
            embedding_provider: Provider used to embed queries
            retriever: Candidate memory retrieval
            evidence: Aggregator for summaries, entities, notes, lists, documents
            disclosures: Append-only disclosure persistence
            config: Settings, defaults to the global settings
            clock: Source of the current time, injectable for reproducible scores
        """
        self.profiles = profiles
        self.embedding_provider = embedding_provider
        self.retriever = retriever
        self.evidence = evidence
        self.disclosure_logger = DisclosureLogger(disclosures)
        self.config = config or default_settings
        self.clock = clock

    async def assemble(
        self,
        profile_name: str | None = None,
        query: str | None = None,
        max_tokens: int | None = None,
        conversation_id: str | None = None,
        include_documents: bool = True,
        max_document_tokens: int | None = None,
    ) -> ContextPackage:
        """Assemble and audit a context package.

        Args:
            profile_name: Profile to use; falls back to the default profile
            query: Optional free-text query driving relevance and searches
            max_tokens: Memory token budget, defaults to the profile's
            conversation_id: Conversation to attribute the disclosure to
            include_documents: Whether to search document excerpts
            max_document_tokens: Token budget for document excerpts

        Returns:
            The assembled package with its disclosure id

        Raises:
            ConfigurationError: If no profile can be resolved
            RetrievalError: If query embedding or candidate retrieval fails
            AuditError: If the disclosure record cannot be written
        """
        now = self.clock()
        query = query.strip() if query and query.strip() else None

        profile = await self._resolve_profile(profile_name)
        budget = max_tokens if max_tokens is not None else profile.max_tokens

        logger.debug(
            f"🔍 Assembling context (profile={profile.name}, budget={budget}, "
            f"query={query[:50] if query else None!r})"
        )

        embedding = await self._embed_query(query)
        candidates = await self._retrieve_candidates(profile, embedding, now)

        scored = score_items(candidates, profile, now)
        allocation = allocate(scored, budget, profile.budget_caps)

        logger.debug(
            f"🧮 Selected {len(allocation.selected)}/{len(scored)} candidates "
            f"({allocation.total_tokens} tokens)"
        )

        bundle = await self.evidence.aggregate(
            item_ids=allocation.item_ids,
            query=query,
            include_documents=include_documents,
            max_document_tokens=max_document_tokens,
        )

        disclosure_id = await self.disclosure_logger.log(
            profile=profile,
            items=allocation.selected,
            token_count=allocation.total_tokens,
            query=query,
            conversation_id=conversation_id,
            created_at=now,
        )

        formatter = ContextFormatter(plain=profile.format == OutputFormat.PLAIN)
        package = ContextPackage(
            generated_at=now,
            profile=profile.name,
            query=query,
            format=profile.format,
            memories=allocation.selected,
            entities=bundle.entities,
            summaries=bundle.summaries,
            notes=bundle.notes,
            lists=bundle.lists,
            documents=bundle.documents,
            token_count=allocation.total_tokens,
            disclosure_id=disclosure_id,
            narrative=formatter.narrative(allocation.selected, bundle.evidence),
            structured=formatter.structured(
                profile,
                query,
                allocation,
                bundle.evidence,
                bundle.degraded_sources,
                disclosure_id,
                now,
            ),
            degraded_sources=bundle.degraded_sources,
        )

        elapsed_ms = (self.clock() - now).total_seconds() * 1000
        logger.info(
            f"✅ Context assembled: {len(package.memories)} memories, "
            f"{package.token_count} tokens, profile={profile.name} ({elapsed_ms:.2f}ms)"
        )
        return package

    async def get_disclosure_log(
        self, limit: int | None = None, conversation_id: str | None = None
    ) -> list[DisclosureRecord]:
        """Return recent disclosure records, newest first."""
        return await self.disclosure_logger.recent(
            limit if limit is not None else self.config.disclosure_log_limit,
            conversation_id,
        )

    async def list_profiles(self) -> list[Profile]:
        return await self.profiles.list_profiles()

    async def close(self) -> None:
        """Release the embedding client held for the engine's lifetime."""
        await self.embedding_provider.close()

    async def _resolve_profile(self, profile_name: str | None) -> Profile:
        if profile_name:
            profile = await self.profiles.get_profile(profile_name)
            if profile is not None:
                return profile
            logger.warning(f"⚠️  Profile '{profile_name}' not found, using default profile")

        profile = await self.profiles.get_default_profile()
        if profile is None:
            raise ConfigurationError("No default context profile configured")
        return profile

    async def _embed_query(self, query: str | None) -> list[float] | None:
        if not query:
            return None

        try:
            async with self.embedding_provider as provider:
                return await provider.embed_text(query)
        except Exception as e:
            logger.error(f"❌ Query embedding failed: {e}")
            raise RetrievalError(f"Query embedding failed: {str(e)}") from e

    async def _retrieve_candidates(
        self, profile: Profile, embedding: list[float] | None, now: datetime
    ) -> list[CandidateItem]:
        threshold = (
            self.config.story_similarity_threshold
            if profile.name == self.config.story_profile_name
            else self.config.similarity_threshold
        )
        candidate_query = CandidateQuery(
            embedding=embedding,
            min_salience=profile.min_salience,
            min_strength=profile.min_strength,
            similarity_threshold=threshold,
            salience_bypass=self.config.salience_bypass,
            since=now - timedelta(days=profile.lookback_days),
            excluded_mode=self.config.excluded_conversation_mode,
            limit=self.config.candidate_limit,
        )

        try:
            candidates = await self.retriever.retrieve(candidate_query)
        except Exception as e:
            logger.error(f"❌ Candidate retrieval failed: {e}")
            raise RetrievalError(f"Candidate retrieval failed: {str(e)}") from e

        return candidates[: self.config.candidate_limit]


async def create_context_engine(config: Settings | None = None) -> ContextEngine:
    """Create a context engine backed by PostgreSQL and OpenAI embeddings.

    Args:
        config: Settings, defaults to the global settings

    Returns:
        Engine wired to the PostgreSQL stores
    """
    from ..core.embeddings.openai_provider import get_embedding_provider
    from ..memory.database.postgres import get_postgres_connection
    from ..memory.stores import (
        CachedProfileStore,
        PostgresCandidateRetriever,
        PostgresDisclosureStore,
        PostgresDocumentSearch,
        PostgresEntityLookup,
        PostgresListSearch,
        PostgresNoteSearch,
        PostgresProfileStore,
        PostgresSummaryProvider,
    )

    config = config or default_settings
    postgres = await get_postgres_connection()
    embedder = get_embedding_provider(config.embedding_model)

    disclosures = PostgresDisclosureStore(postgres)
    await disclosures.initialize_schema()

    evidence = EvidenceAggregator(
        summaries=PostgresSummaryProvider(postgres),
        entities=PostgresEntityLookup(postgres),
        notes=PostgresNoteSearch(postgres, embedder),
        lists=PostgresListSearch(postgres, embedder),
        documents=PostgresDocumentSearch(postgres, embedder),
        config=config,
    )

    return ContextEngine(
        profiles=CachedProfileStore(PostgresProfileStore(postgres)),
        embedding_provider=embedder,
        retriever=PostgresCandidateRetriever(postgres),
        evidence=evidence,
        disclosures=disclosures,
        config=config,
    )
