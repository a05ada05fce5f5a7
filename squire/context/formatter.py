"""Rendering of context packages.

The narrative view presents context as recalled knowledge rather than query
output: no ids, scores, similarity values or dates. The structured view is a
full tree with every score, meant for inspection and debugging.
"""

import json
from datetime import datetime
from typing import Any, Callable

from ..core.domain.context import (
    AuxiliaryEvidence,
    ContextPackage,
    DocumentExcerpt,
    EntityMention,
    ListRecord,
    LivingSummary,
    Note,
    OutputFormat,
    Profile,
    ScoredItem,
)
from .budget import BudgetAllocation

# Entity roll-up order and labels; other entity types are not rolled up
ENTITY_TYPE_ORDER = ("person", "project", "organization", "place", "concept")
ENTITY_TYPE_LABELS = {
    "person": "people",
    "project": "projects",
    "organization": "organizations",
    "place": "places",
    "concept": "concepts",
}

# Narrative section order; every other entry is an evidence ``kind``
MEMORY_SECTION = "memory"
NARRATIVE_ORDER = ("summary", MEMORY_SECTION, "note", "list", "document", "entity")

# Structured view key for each evidence kind
STRUCTURED_KEYS = {
    "summary": "summaries",
    "entity": "entities",
    "note": "notes",
    "list": "lists",
    "document": "documents",
}


def group_by_kind(evidence: list[AuxiliaryEvidence]) -> dict[str, list[AuxiliaryEvidence]]:
    """Bucket evidence items by their ``kind`` tag, keeping input order."""
    grouped: dict[str, list[AuxiliaryEvidence]] = {}
    for item in evidence:
        grouped.setdefault(item.kind, []).append(item)
    return grouped


class ContextFormatter:
    """Builds the narrative and structured renderings of a package."""

    def __init__(self, plain: bool = False):
        self.plain = plain

    def _heading(self, text: str, level: int) -> str:
        if self.plain:
            return text.upper() if level == 1 else text
        return f"{'#' * level} {text}"

    def _bold(self, text: str) -> str:
        return text if self.plain else f"**{text}**"

    def narrative(self, memories: list[ScoredItem], evidence: list[AuxiliaryEvidence]) -> str:
        """Render summaries, memories, notes, lists, documents, then entities."""
        by_kind = group_by_kind(evidence)
        builders: dict[str, Callable[[list[Any]], str]] = {
            "summary": self._summaries_section,
            "note": self._notes_section,
            "list": self._lists_section,
            "document": self._documents_section,
            "entity": self._entities_section,
        }

        sections = []
        for kind in NARRATIVE_ORDER:
            if kind == MEMORY_SECTION:
                sections.append(self._memories_section(memories))
            else:
                sections.append(builders[kind](by_kind.get(kind, [])))
        return "\n\n".join(section for section in sections if section)

    def _summaries_section(self, summaries: list[LivingSummary]) -> str:
        if not summaries:
            return ""

        lines = [self._heading("What You Know About Them", 1)]
        for summary in summaries:
            title = summary.category[:1].upper() + summary.category[1:]
            lines.append("")
            lines.append(f"{self._bold(title)}: {summary.content}")
        return "\n".join(lines)

    def _memories_section(self, memories: list[ScoredItem]) -> str:
        if not memories:
            return ""

        lines = [self._heading("Relevant Context", 1), ""]
        lines.extend(f"- {memory.content}" for memory in memories)
        return "\n".join(lines)

    def _notes_section(self, notes: list[Note]) -> str:
        if not notes:
            return ""

        lines = [self._heading("Relevant Notes", 2)]
        for note in notes:
            entity_info = f" ({note.entity_name})" if note.entity_name else ""
            lines.append("")
            lines.append(self._heading(f"{note.label}{entity_info}", 3))
            lines.append(note.content)
        return "\n".join(lines)

    def _lists_section(self, lists: list[ListRecord]) -> str:
        if not lists:
            return ""

        lines = [self._heading("Relevant Lists", 2), ""]
        for record in lists:
            entity_info = f" ({record.entity_name})" if record.entity_name else ""
            lines.append(f"- {self._bold(record.label)}{entity_info}: {record.content}")
        return "\n".join(lines)

    def _documents_section(self, documents: list[DocumentExcerpt]) -> str:
        if not documents:
            return ""

        lines = [
            self._heading("Relevant Documents", 2),
            "",
            "When using information from these documents, cite the source."
            if self.plain
            else "*When using information from these documents, cite the source.*",
        ]

        by_document: dict[str, list[DocumentExcerpt]] = {}
        for excerpt in documents:
            by_document.setdefault(excerpt.document_name, []).append(excerpt)

        source_index = 1
        for document_name, excerpts in by_document.items():
            lines.append("")
            lines.append(self._heading(document_name, 3))
            for excerpt in excerpts:
                lines.append("")
                lines.append(citation(excerpt, source_index))
                lines.append(excerpt.content)
                source_index += 1
        return "\n".join(lines)

    def _entities_section(self, entities: list[EntityMention]) -> str:
        by_type: dict[str, list[str]] = {}
        for entity in entities:
            by_type.setdefault(entity.entity_type, []).append(entity.label)

        parts = [
            f"{ENTITY_TYPE_LABELS[entity_type]}: {', '.join(by_type[entity_type])}"
            for entity_type in ENTITY_TYPE_ORDER
            if by_type.get(entity_type)
        ]
        if not parts:
            return ""
        return f"{self._bold('People & things mentioned')}: {' | '.join(parts)}"

    def structured(
        self,
        profile: Profile,
        query: str | None,
        allocation: BudgetAllocation,
        evidence: list[AuxiliaryEvidence],
        degraded_sources: list[str],
        disclosure_id: str,
        generated_at: datetime,
    ) -> dict[str, Any]:
        """Full JSON-compatible tree including scores and budget accounting."""
        by_kind = group_by_kind(evidence)
        tree: dict[str, Any] = {
            "profile": profile.name,
            "generated_at": generated_at.isoformat(),
            "query": query,
            "format": profile.format.value,
            "disclosure_id": disclosure_id,
            "scoring_weights": profile.scoring_weights.model_dump(),
            "budget": {
                tier.value: {
                    "ceiling": allocation.ceilings[tier],
                    "used": allocation.used[tier],
                    "rejected": allocation.rejected.get(tier, 0),
                }
                for tier in allocation.ceilings
            },
            "token_count": allocation.total_tokens,
            "memories": [
                {
                    "id": m.id,
                    "content": m.content,
                    "created_at": m.created_at.isoformat(),
                    "tier": m.tier.value,
                    "scores": {
                        "salience": m.salience,
                        "strength": m.retention_strength,
                        "recency": m.recency_score,
                        "similarity": m.similarity,
                        "final": m.final_score,
                    },
                    "token_estimate": m.token_estimate,
                }
                for m in allocation.selected
            ],
            "degraded_sources": list(degraded_sources),
        }
        for kind, key in STRUCTURED_KEYS.items():
            tree[key] = [item.model_dump(mode="json") for item in by_kind.get(kind, [])]
        return tree


def citation(excerpt: DocumentExcerpt, source_index: int) -> str:
    """Citation marker of the form ``[DOC-n: name, location]``."""
    location_parts = []
    if excerpt.page_number:
        location_parts.append(f"p.{excerpt.page_number}")
    if excerpt.section_title:
        location_parts.append(excerpt.section_title)
    location = ", ".join(location_parts) if location_parts else f"chunk {source_index}"
    return f"[DOC-{source_index}: {excerpt.document_name}, {location}]"


def render(package: ContextPackage) -> str:
    """Render a package in its profile's preferred format."""
    if package.format == OutputFormat.JSON:
        return json.dumps(package.structured, indent=2)
    return package.narrative
