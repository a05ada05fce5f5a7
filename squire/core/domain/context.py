"""Context assembly domain models."""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Tier(str, Enum):
    """Disclosure tiers, in budget fill order."""

    HIGH_SALIENCE = "high_salience"
    RELEVANT = "relevant"
    RECENT = "recent"


class OutputFormat(str, Enum):
    """Preferred rendering of a context package."""

    MARKDOWN = "markdown"
    JSON = "json"
    PLAIN = "plain"


class ScoringWeights(BaseModel):
    """Weights applied to each scoring factor. Not normalized."""

    salience: float = Field(default=0.3, description="Weight of normalized salience")
    relevance: float = Field(default=0.3, description="Weight of query similarity")
    recency: float = Field(default=0.2, description="Weight of recency decay")
    strength: float = Field(default=0.2, description="Weight of retention strength")


class BudgetCaps(BaseModel):
    """Fraction of the token budget available to each tier."""

    high_salience: float = Field(default=0.4, ge=0.0, le=1.0)
    relevant: float = Field(default=0.4, ge=0.0, le=1.0)
    recent: float = Field(default=0.2, ge=0.0, le=1.0)

    def cap_for(self, tier: Tier) -> float:
        """Return the cap fraction for a tier."""
        return getattr(self, tier.value)


class Profile(BaseModel):
    """Named configuration bundle controlling one assembly style."""

    id: str | None = Field(None, description="Store identifier")
    name: str = Field(..., description="Unique profile name")
    description: str | None = None
    min_salience: float = Field(default=0.0, ge=0.0, le=10.0)
    min_strength: float = Field(default=0.0, ge=0.0, le=1.0)
    lookback_days: int = Field(default=30, gt=0, description="Recency window in days")
    max_tokens: int = Field(default=4000, gt=0, description="Default token budget")
    format: OutputFormat = OutputFormat.MARKDOWN
    scoring_weights: ScoringWeights = Field(default_factory=ScoringWeights)
    budget_caps: BudgetCaps = Field(default_factory=BudgetCaps)
    is_default: bool = False

    @field_validator("scoring_weights", "budget_caps", mode="before")
    @classmethod
    def _parse_json_column(cls, value: Any) -> Any:
        # JSONB columns come back from asyncpg as text
        if isinstance(value, str):
            return json.loads(value)
        return value


class CandidateItem(BaseModel):
    """A memory returned by candidate retrieval, before scoring."""

    id: str
    content: str
    created_at: datetime
    salience: float = Field(..., ge=0.0, le=10.0)
    retention_strength: float = Field(..., ge=0.0, le=1.0)
    similarity: float | None = Field(None, description="Query similarity, None without a query")


class ScoredItem(CandidateItem):
    """A candidate with its scores, token cost and tier."""

    recency_score: float = Field(..., ge=0.0, le=1.0)
    final_score: float = Field(..., ge=0.0, le=1.0)
    token_estimate: int = Field(..., ge=0)
    tier: Tier


class CandidateQuery(BaseModel):
    """Parameters handed to candidate retrieval."""

    embedding: list[float] | None = None
    min_salience: float = 0.0
    min_strength: float = 0.0
    similarity_threshold: float = 0.25
    salience_bypass: float = 6.0
    since: datetime
    excluded_mode: str | None = "meta_ai"
    limit: int = 100


# Auxiliary evidence: a tagged union discriminated by ``kind``.

class EvidenceBase(BaseModel):
    """Normalized shape shared by every evidence kind."""

    id: str
    label: str
    content: str
    similarity: float | None = None


class EntityMention(EvidenceBase):
    """An entity mentioned in the selected memories."""

    kind: Literal["entity"] = "entity"
    entity_type: str
    mention_count: int = 0


class LivingSummary(EvidenceBase):
    """A continuously maintained summary for one life category."""

    kind: Literal["summary"] = "summary"
    category: str
    version: int = 1
    memory_count: int = 0


class Note(EvidenceBase):
    """A user note, either pinned or matched by query."""

    kind: Literal["note"] = "note"
    category: str | None = None
    entity_name: str | None = None
    pinned: bool = False


class ListRecord(EvidenceBase):
    """A user list matched by query."""

    kind: Literal["list"] = "list"
    list_type: str = "custom"
    entity_name: str | None = None


class DocumentExcerpt(EvidenceBase):
    """A chunk of an uploaded document matched by query."""

    kind: Literal["document"] = "document"
    chunk_id: str
    document_name: str
    page_number: int | None = None
    section_title: str | None = None
    token_count: int | None = None


AuxiliaryEvidence = Annotated[
    Union[EntityMention, LivingSummary, Note, ListRecord, DocumentExcerpt],
    Field(discriminator="kind"),
]


class ContextPackage(BaseModel):
    """Everything disclosed to the downstream model for one request."""

    generated_at: datetime = Field(default_factory=utc_now)
    profile: str
    query: str | None = None
    format: OutputFormat = OutputFormat.MARKDOWN
    memories: list[ScoredItem] = Field(default_factory=list)
    entities: list[EntityMention] = Field(default_factory=list)
    summaries: list[LivingSummary] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    lists: list[ListRecord] = Field(default_factory=list)
    documents: list[DocumentExcerpt] = Field(default_factory=list)
    token_count: int = 0
    disclosure_id: str
    narrative: str = ""
    structured: dict[str, Any] = Field(default_factory=dict)
    degraded_sources: list[str] = Field(
        default_factory=list,
        description="Optional evidence sources that failed and were left empty",
    )


class DisclosureRecord(BaseModel):
    """Append-only audit row describing one disclosure."""

    id: str | None = None
    profile_name: str
    query: str | None = None
    disclosed_item_ids: list[str] = Field(default_factory=list)
    item_count: int = 0
    scoring_weights: ScoringWeights
    token_count: int = 0
    format: OutputFormat = OutputFormat.MARKDOWN
    conversation_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("scoring_weights", "disclosed_item_ids", mode="before")
    @classmethod
    def _parse_json_column(cls, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value)
        return value
