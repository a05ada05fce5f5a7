"""Context assembly for memory injection."""

from .budget import BudgetAllocation, allocate
from .categorizer import CATEGORY_RULES, CategoryRule, categorize
from .disclosure import DisclosureLogger
from .engine import ContextEngine, create_context_engine
from .evidence import EvidenceAggregator, EvidenceBundle
from .formatter import ContextFormatter, render
from .recency import recency_score
from .scoring import final_score, score_item, score_items

__all__ = [
    "ContextEngine",
    "create_context_engine",
    "EvidenceAggregator",
    "EvidenceBundle",
    "DisclosureLogger",
    "ContextFormatter",
    "render",
    "BudgetAllocation",
    "allocate",
    "CATEGORY_RULES",
    "CategoryRule",
    "categorize",
    "recency_score",
    "final_score",
    "score_item",
    "score_items",
]
