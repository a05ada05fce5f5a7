"""Living summaries, notes, lists and document search backed by PostgreSQL."""

import logging

from ...context.sources import DocumentSearch, ListSearch, NoteSearch, SummaryProvider
from ...core.domain.context import DocumentExcerpt, ListRecord, LivingSummary, Note
from ...core.embeddings.base import EmbeddingProvider
from ..database.postgres import PostgresConnection, vector_literal

logger = logging.getLogger(__name__)


class PostgresSummaryProvider(SummaryProvider):
    def __init__(self, postgres: PostgresConnection):
        self.postgres = postgres

    async def get_non_empty_summaries(self) -> list[LivingSummary]:
        rows = await self.postgres.execute_query(
            """
            SELECT category, content, version, memory_count
            FROM living_summaries
            WHERE content != ''
            ORDER BY last_updated_at DESC
            """,
            fetch=True,
        )
        return [
            LivingSummary(
                id=row["category"],
                label=row["category"],
                category=row["category"],
                content=row["content"],
                version=row["version"],
                memory_count=row["memory_count"],
            )
            for row in rows or []
        ]


class _EmbeddingSearch:
    """Shared query embedding for the vector-search stores."""

    def __init__(self, postgres: PostgresConnection, embedding_provider: EmbeddingProvider):
        self.postgres = postgres
        self.embedding_provider = embedding_provider

    async def _embed(self, query: str) -> str:
        async with self.embedding_provider as provider:
            embedding = await provider.embed_text(query)
        return vector_literal(embedding)


class PostgresNoteSearch(_EmbeddingSearch, NoteSearch):
    async def search(self, query: str, limit: int, threshold: float) -> list[Note]:
        embedding = await self._embed(query)
        rows = await self.postgres.execute_query(
            """
            SELECT n.id::text AS id, n.title, n.content, n.category,
                   e.name AS entity_name,
                   1 - (n.embedding <=> $1::vector) AS similarity
            FROM notes n
            LEFT JOIN entities e ON e.id = n.primary_entity_id
            WHERE n.archived_at IS NULL
                AND n.embedding IS NOT NULL
                AND 1 - (n.embedding <=> $1::vector) >= $2
            ORDER BY similarity DESC
            LIMIT $3
            """,
            embedding,
            threshold,
            limit,
            fetch=True,
        )
        return [self._note_from_row(row) for row in rows or []]

    async def get_pinned(self) -> list[Note]:
        rows = await self.postgres.execute_query(
            """
            SELECT n.id::text AS id, n.title, n.content, n.category,
                   e.name AS entity_name, NULL::float AS similarity
            FROM notes n
            LEFT JOIN entities e ON e.id = n.primary_entity_id
            WHERE n.archived_at IS NULL AND n.is_pinned = TRUE
            ORDER BY n.updated_at DESC
            """,
            fetch=True,
        )
        return [self._note_from_row(row, pinned=True) for row in rows or []]

    @staticmethod
    def _note_from_row(row, pinned: bool = False) -> Note:
        return Note(
            id=row["id"],
            label=row["title"] or "Untitled Note",
            content=row["content"],
            category=row["category"],
            entity_name=row["entity_name"],
            similarity=row["similarity"],
            pinned=pinned,
        )


class PostgresListSearch(_EmbeddingSearch, ListSearch):
    async def search(self, query: str, limit: int, threshold: float) -> list[ListRecord]:
        embedding = await self._embed(query)
        rows = await self.postgres.execute_query(
            """
            SELECT l.id::text AS id, l.name, l.description, l.list_type,
                   e.name AS entity_name,
                   1 - (l.embedding <=> $1::vector) AS similarity
            FROM lists l
            LEFT JOIN entities e ON e.id = l.primary_entity_id
            WHERE l.archived_at IS NULL
                AND l.embedding IS NOT NULL
                AND 1 - (l.embedding <=> $1::vector) > $2
            ORDER BY similarity DESC
            LIMIT $3
            """,
            embedding,
            threshold,
            limit,
            fetch=True,
        )
        return [
            ListRecord(
                id=row["id"],
                label=row["name"],
                content=row["description"] or row["list_type"],
                list_type=row["list_type"],
                entity_name=row["entity_name"],
                similarity=row["similarity"],
            )
            for row in rows or []
        ]


class PostgresDocumentSearch(_EmbeddingSearch, DocumentSearch):
    async def search(
        self, query: str, limit: int, threshold: float
    ) -> list[DocumentExcerpt]:
        embedding = await self._embed(query)
        rows = await self.postgres.execute_query(
            """
            SELECT c.id::text AS chunk_id, c.object_id::text AS object_id,
                   c.content, c.token_count, c.page_number, c.section_title,
                   o.name AS document_name,
                   1 - (c.embedding <=> $1::vector) AS similarity
            FROM document_chunks c
            JOIN objects o ON o.id = c.object_id
            WHERE c.embedding IS NOT NULL
                AND 1 - (c.embedding <=> $1::vector) >= $2
            ORDER BY similarity DESC
            LIMIT $3
            """,
            embedding,
            threshold,
            limit,
            fetch=True,
        )
        return [
            DocumentExcerpt(
                id=row["object_id"],
                chunk_id=row["chunk_id"],
                label=row["document_name"],
                document_name=row["document_name"],
                content=row["content"],
                page_number=row["page_number"],
                section_title=row["section_title"],
                token_count=row["token_count"],
                similarity=row["similarity"],
            )
            for row in rows or []
        ]
