"""Tier assignment for scored memories.

Rules are evaluated in order and the first match wins. Salience rules come
before similarity rules, and overlapping thresholds are resolved by rule
order alone.
"""

from dataclasses import dataclass
from typing import Callable

from ..core.domain.context import CandidateItem, Tier


@dataclass(frozen=True)
class CategoryRule:
    """A named predicate that assigns a tier when it matches."""

    name: str
    predicate: Callable[[CandidateItem], bool]
    tier: Tier

    def matches(self, item: CandidateItem) -> bool:
        return self.predicate(item)


def _similarity_at_least(item: CandidateItem, threshold: float) -> bool:
    return item.similarity is not None and item.similarity >= threshold


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        name="very_high_salience",
        predicate=lambda item: item.salience >= 8.0,
        tier=Tier.HIGH_SALIENCE,
    ),
    CategoryRule(
        name="high_salience_with_any_relevance",
        predicate=lambda item: item.salience >= 6.0
        and (item.similarity is None or item.similarity >= 0.15),
        tier=Tier.HIGH_SALIENCE,
    ),
    CategoryRule(
        name="strong_match",
        predicate=lambda item: _similarity_at_least(item, 0.4),
        tier=Tier.RELEVANT,
    ),
    CategoryRule(
        name="moderate_match",
        predicate=lambda item: _similarity_at_least(item, 0.35),
        tier=Tier.RELEVANT,
    ),
    CategoryRule(
        name="fallback",
        predicate=lambda item: True,
        tier=Tier.RECENT,
    ),
)


def explain(item: CandidateItem, rules: tuple[CategoryRule, ...] = CATEGORY_RULES) -> CategoryRule:
    """Return the first rule matching the item."""
    for rule in rules:
        if rule.matches(item):
            return rule
    raise ValueError(f"No category rule matched item {item.id}")


def categorize(item: CandidateItem, rules: tuple[CategoryRule, ...] = CATEGORY_RULES) -> Tier:
    """Assign a disclosure tier from the item's own salience and similarity."""
    return explain(item, rules).tier
