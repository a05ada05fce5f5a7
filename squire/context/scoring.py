"""Multi-factor scoring of candidate memories."""

from datetime import datetime

from ..core.domain.context import CandidateItem, Profile, ScoredItem, ScoringWeights
from ..core.utils.tokens import estimate_tokens
from .categorizer import categorize
from .recency import recency_score

# Relevance used when there is no query similarity
NEUTRAL_RELEVANCE = 0.5


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def final_score(
    item: CandidateItem,
    weights: ScoringWeights,
    recency: float,
) -> float:
    """Weighted sum of salience, relevance, recency and strength, clamped to [0, 1].

    Weights are taken as given; only the result is clamped.
    """
    relevance = item.similarity if item.similarity is not None else NEUTRAL_RELEVANCE
    score = (
        weights.salience * (item.salience / 10)
        + weights.relevance * relevance
        + weights.recency * recency
        + weights.strength * item.retention_strength
    )
    return clamp(score)


def score_item(item: CandidateItem, profile: Profile, now: datetime) -> ScoredItem:
    """Score, estimate and categorize a single candidate."""
    recency = recency_score(item.created_at, profile.lookback_days, now)
    return ScoredItem(
        **item.model_dump(include=set(CandidateItem.model_fields)),
        recency_score=recency,
        final_score=final_score(item, profile.scoring_weights, recency),
        token_estimate=estimate_tokens(item.content),
        tier=categorize(item),
    )


def score_items(
    items: list[CandidateItem], profile: Profile, now: datetime
) -> list[ScoredItem]:
    """Score every candidate against one profile at one instant."""
    return [score_item(item, profile, now) for item in items]
