"""Domain models for the Squire context engine.

This module contains the core data structures that flow through context
assembly: profiles, candidate and scored memories, auxiliary evidence,
context packages and disclosure records.
"""

from .context import (
    AuxiliaryEvidence,
    BudgetCaps,
    CandidateItem,
    CandidateQuery,
    ContextPackage,
    DisclosureRecord,
    DocumentExcerpt,
    EntityMention,
    ListRecord,
    LivingSummary,
    Note,
    OutputFormat,
    Profile,
    ScoredItem,
    ScoringWeights,
    Tier,
)

__all__ = [
    # Configuration
    "Profile",
    "ScoringWeights",
    "BudgetCaps",
    "OutputFormat",

    # Memories
    "CandidateItem",
    "CandidateQuery",
    "ScoredItem",
    "Tier",

    # Auxiliary evidence
    "AuxiliaryEvidence",
    "EntityMention",
    "LivingSummary",
    "Note",
    "ListRecord",
    "DocumentExcerpt",

    # Output and audit
    "ContextPackage",
    "DisclosureRecord",
]
