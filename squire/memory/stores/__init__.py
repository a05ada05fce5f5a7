"""PostgreSQL implementations of the context engine's collaborators."""

from .disclosure import PostgresDisclosureStore
from .knowledge import (
    PostgresDocumentSearch,
    PostgresListSearch,
    PostgresNoteSearch,
    PostgresSummaryProvider,
)
from .memories import PostgresCandidateRetriever, PostgresEntityLookup
from .profiles import CachedProfileStore, PostgresProfileStore

__all__ = [
    "CachedProfileStore",
    "PostgresProfileStore",
    "PostgresCandidateRetriever",
    "PostgresEntityLookup",
    "PostgresSummaryProvider",
    "PostgresNoteSearch",
    "PostgresListSearch",
    "PostgresDocumentSearch",
    "PostgresDisclosureStore",
]
