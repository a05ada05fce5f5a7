"""Collaborator interfaces consumed by the context engine.

Every store the engine reads from or writes to is external: concrete
PostgreSQL implementations live in ``squire.memory.stores``, and tests use
in-memory fakes.
"""

from abc import ABC, abstractmethod

from ..core.domain.context import (
    CandidateItem,
    CandidateQuery,
    DisclosureRecord,
    DocumentExcerpt,
    EntityMention,
    ListRecord,
    LivingSummary,
    Note,
    Profile,
)


class ProfileStore(ABC):
    """Read-only access to context profiles."""

    @abstractmethod
    async def get_profile(self, name: str) -> Profile | None:
        """Return the named profile, or None if it does not exist."""
        pass

    @abstractmethod
    async def get_default_profile(self) -> Profile:
        """Return the default profile.

        Raises:
            ConfigurationError: If no default profile is configured
        """
        pass

    @abstractmethod
    async def list_profiles(self) -> list[Profile]:
        """Return all profiles, default first."""
        pass


class CandidateRetriever(ABC):
    """Fetches candidate memories for scoring."""

    @abstractmethod
    async def retrieve(self, query: CandidateQuery) -> list[CandidateItem]:
        """Return at most ``query.limit`` candidates matching the filters."""
        pass


class EntityLookup(ABC):
    @abstractmethod
    async def get_entities_for_items(
        self, item_ids: list[str], limit: int = 20
    ) -> list[EntityMention]:
        """Return non-merged entities mentioned in the given memories."""
        pass


class SummaryProvider(ABC):
    @abstractmethod
    async def get_non_empty_summaries(self) -> list[LivingSummary]:
        """Return every living summary that has content."""
        pass


class NoteSearch(ABC):
    @abstractmethod
    async def search(self, query: str, limit: int, threshold: float) -> list[Note]:
        """Return notes ranked by similarity to the query."""
        pass

    @abstractmethod
    async def get_pinned(self) -> list[Note]:
        """Return all pinned, non-archived notes."""
        pass


class ListSearch(ABC):
    @abstractmethod
    async def search(self, query: str, limit: int, threshold: float) -> list[ListRecord]:
        """Return lists ranked by similarity to the query."""
        pass


class DocumentSearch(ABC):
    @abstractmethod
    async def search(
        self, query: str, limit: int, threshold: float
    ) -> list[DocumentExcerpt]:
        """Return document chunks ranked by similarity to the query."""
        pass


class DisclosureStore(ABC):
    """Append-only persistence for disclosure records."""

    @abstractmethod
    async def append(self, record: DisclosureRecord) -> str:
        """Persist a record and return its durable identifier."""
        pass

    @abstractmethod
    async def list_recent(
        self, limit: int, conversation_id: str | None = None
    ) -> list[DisclosureRecord]:
        """Return the newest records first, optionally for one conversation."""
        pass
