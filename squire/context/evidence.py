"""Auxiliary evidence aggregation.

Fans out to summaries, entities, notes, lists and documents in parallel and
merges the results. Note, list and document lookups are optional: each one is
wrapped so that its failure degrades to an empty result for that source only.
Entity and summary lookups are expected to be reliable and their failures
propagate to the caller.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, TypeVar

from ..core.config import Settings, settings as default_settings
from ..core.domain.context import (
    AuxiliaryEvidence,
    DocumentExcerpt,
    EntityMention,
    ListRecord,
    LivingSummary,
    Note,
)
from ..core.errors import EvidenceSourceError
from ..core.utils.tokens import estimate_tokens
from .sources import DocumentSearch, EntityLookup, ListSearch, NoteSearch, SummaryProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class EvidenceBundle:
    """Merged auxiliary evidence for one request."""

    entities: list[EntityMention] = field(default_factory=list)
    summaries: list[LivingSummary] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)
    lists: list[ListRecord] = field(default_factory=list)
    documents: list[DocumentExcerpt] = field(default_factory=list)
    degraded_sources: list[str] = field(default_factory=list)

    @property
    def evidence(self) -> list[AuxiliaryEvidence]:
        """All evidence items as one tagged list."""
        return [*self.summaries, *self.notes, *self.lists, *self.documents, *self.entities]


def merge_notes(pinned: list[Note], matched: list[Note]) -> list[Note]:
    """Pinned notes first, then query matches not already pinned."""
    pinned = [note.model_copy(update={"pinned": True}) for note in pinned]
    seen = {note.id for note in pinned}
    merged = list(pinned)
    for note in matched:
        if note.id not in seen:
            merged.append(note)
            seen.add(note.id)
    return merged


def trim_documents(
    excerpts: list[DocumentExcerpt], max_tokens: int
) -> list[DocumentExcerpt]:
    """Keep ranked excerpts until the next one would exceed the budget.

    The first excerpt is always kept so a single long match is not lost.
    """
    kept: list[DocumentExcerpt] = []
    total = 0
    for excerpt in excerpts:
        tokens = excerpt.token_count if excerpt.token_count is not None else estimate_tokens(excerpt.content)
        if total + tokens > max_tokens and kept:
            break
        kept.append(excerpt)
        total += tokens
    return kept


class EvidenceAggregator:
    """Collects auxiliary evidence from external sources concurrently."""

    def __init__(
        self,
        summaries: SummaryProvider,
        entities: EntityLookup,
        notes: NoteSearch,
        lists: ListSearch,
        documents: DocumentSearch,
        config: Settings | None = None,
    ):
        self.summaries = summaries
        self.entities = entities
        self.notes = notes
        self.lists = lists
        self.documents = documents
        self.config = config or default_settings

    async def aggregate(
        self,
        item_ids: list[str],
        query: str | None = None,
        include_documents: bool = True,
        max_document_tokens: int | None = None,
    ) -> EvidenceBundle:
        """Gather evidence for the selected memories and optional query.

        Args:
            item_ids: Ids of the memories selected for disclosure
            query: Free-text query; note, list and document search need one
            include_documents: Whether to search document excerpts
            max_document_tokens: Token budget for document excerpts

        Returns:
            Merged evidence, with failed optional sources listed as degraded
        """
        degraded: list[str] = []
        if max_document_tokens is None:
            max_document_tokens = self.config.default_max_document_tokens

        summaries_task = self.summaries.get_non_empty_summaries()
        entities_task = self._entities_for(item_ids)
        pinned_task = self._optional("pinned_notes", self.notes.get_pinned(), degraded)

        if query:
            notes_task = self._optional(
                "notes",
                self.notes.search(
                    query,
                    self.config.note_search_limit,
                    self.config.note_search_threshold,
                ),
                degraded,
            )
            lists_task = self._optional(
                "lists",
                self.lists.search(
                    query,
                    self.config.list_search_limit,
                    self.config.list_search_threshold,
                ),
                degraded,
            )
        else:
            notes_task = _empty()
            lists_task = _empty()

        if query and include_documents:
            documents_task = self._optional(
                "documents",
                self.documents.search(
                    query,
                    self.config.document_search_limit,
                    self.config.document_search_threshold,
                ),
                degraded,
            )
        else:
            documents_task = _empty()

        # Optional sources absorb their own errors; the first required-source
        # failure propagates once every lookup has finished.
        summaries, entities, pinned, matched_notes, lists, documents = await asyncio.gather(
            summaries_task,
            entities_task,
            pinned_task,
            notes_task,
            lists_task,
            documents_task,
            return_exceptions=True,
        )
        for result in (summaries, entities):
            if isinstance(result, BaseException):
                raise result

        bundle = EvidenceBundle(
            entities=entities,
            summaries=summaries,
            notes=merge_notes(pinned, matched_notes),
            lists=lists,
            documents=trim_documents(documents, max_document_tokens),
            degraded_sources=sorted(degraded),
        )

        logger.debug(
            f"📚 Evidence: {len(bundle.summaries)} summaries, {len(bundle.entities)} entities, "
            f"{len(bundle.notes)} notes, {len(bundle.lists)} lists, "
            f"{len(bundle.documents)} documents"
        )
        return bundle

    async def _entities_for(self, item_ids: list[str]) -> list[EntityMention]:
        if not item_ids:
            return []
        return await self.entities.get_entities_for_items(item_ids, self.config.entity_limit)

    async def _optional(
        self, source: str, lookup: Awaitable[list[T]], degraded: list[str]
    ) -> list[T]:
        """Await an optional lookup, degrading to no results on failure."""
        try:
            return await lookup
        except Exception as e:
            error = EvidenceSourceError(source, e)
            logger.warning(f"⚠️  {error}; continuing without {source}")
            degraded.append(source)
            return []


async def _empty() -> list:
    return []
