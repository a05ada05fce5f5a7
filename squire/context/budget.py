"""Tiered token budgeting for scored memories."""

import math
from dataclasses import dataclass, field

from ..core.domain.context import BudgetCaps, ScoredItem, Tier


@dataclass
class BudgetAllocation:
    """Result of budgeting: the selection plus per-tier accounting."""

    selected: list[ScoredItem]
    ceilings: dict[Tier, int]
    used: dict[Tier, int]
    rejected: dict[Tier, int] = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return sum(item.token_estimate for item in self.selected)

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.selected]


def tier_ceiling(max_tokens: int, cap: float) -> int:
    return math.floor(max_tokens * cap)


def allocate(
    items: list[ScoredItem], max_tokens: int, caps: BudgetCaps
) -> BudgetAllocation:
    """Greedily fill each tier up to its own ceiling.

    Within a tier, items are taken by descending final score and accepted only
    if they still fit. A rejected item is never retried and never moves to
    another tier; tiers do not lend unused budget to each other. The returned
    selection is re-sorted by final score for presentation.
    """
    ceilings = {tier: tier_ceiling(max_tokens, caps.cap_for(tier)) for tier in Tier}
    used = {tier: 0 for tier in Tier}
    rejected = {tier: 0 for tier in Tier}
    selected: list[ScoredItem] = []

    for tier in Tier:
        in_tier = sorted(
            (item for item in items if item.tier == tier),
            key=lambda item: item.final_score,
            reverse=True,
        )
        for item in in_tier:
            if used[tier] + item.token_estimate <= ceilings[tier]:
                selected.append(item)
                used[tier] += item.token_estimate
            else:
                rejected[tier] += 1

    selected.sort(key=lambda item: item.final_score, reverse=True)
    return BudgetAllocation(selected=selected, ceilings=ceilings, used=used, rejected=rejected)
