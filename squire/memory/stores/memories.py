"""Memory candidate retrieval and entity lookup backed by PostgreSQL + pgvector."""

import logging

from ...context.sources import CandidateRetriever, EntityLookup
from ...core.domain.context import CandidateItem, CandidateQuery, EntityMention
from ..database.postgres import PostgresConnection, vector_literal

logger = logging.getLogger(__name__)


class PostgresCandidateRetriever(CandidateRetriever):
    """Reads candidate memories from the ``memories`` table."""

    def __init__(self, postgres: PostgresConnection):
        self.postgres = postgres

    async def retrieve(self, query: CandidateQuery) -> list[CandidateItem]:
        """Fetch candidates, by similarity when an embedding is given.

        High-salience memories bypass the similarity threshold so that
        biographical facts phrased differently from the query still surface.
        Memories from the excluded conversation mode never qualify.
        """
        if query.embedding is not None:
            sql = """
                SELECT
                    id::text AS id, content, created_at,
                    salience_score, current_strength,
                    1 - (embedding <=> $1::vector) AS similarity
                FROM memories
                WHERE embedding IS NOT NULL
                    AND salience_score >= $2
                    AND current_strength >= $3
                    AND created_at >= $4
                    AND (
                        salience_score >= $5
                        OR 1 - (embedding <=> $1::vector) >= $6
                    )
                    AND (conversation_mode IS NULL OR conversation_mode IS DISTINCT FROM $7)
                ORDER BY similarity DESC, salience_score DESC
                LIMIT $8
            """
            args = (
                vector_literal(query.embedding),
                query.min_salience,
                query.min_strength,
                query.since,
                query.salience_bypass,
                query.similarity_threshold,
                query.excluded_mode,
                query.limit,
            )
        else:
            sql = """
                SELECT
                    id::text AS id, content, created_at,
                    salience_score, current_strength,
                    NULL::float AS similarity
                FROM memories
                WHERE salience_score >= $1
                    AND current_strength >= $2
                    AND created_at >= $3
                    AND (conversation_mode IS NULL OR conversation_mode IS DISTINCT FROM $4)
                ORDER BY salience_score DESC, created_at DESC
                LIMIT $5
            """
            args = (
                query.min_salience,
                query.min_strength,
                query.since,
                query.excluded_mode,
                query.limit,
            )

        rows = await self.postgres.execute_query(sql, *args, fetch=True)
        candidates = [
            CandidateItem(
                id=row["id"],
                content=row["content"],
                created_at=row["created_at"],
                salience=float(row["salience_score"]),
                retention_strength=float(row["current_strength"]),
                similarity=(
                    max(0.0, min(1.0, float(row["similarity"])))
                    if row["similarity"] is not None
                    else None
                ),
            )
            for row in rows or []
        ]
        logger.debug(f"Retrieved {len(candidates)} candidate memories")
        return candidates


class PostgresEntityLookup(EntityLookup):
    """Entities mentioned in a set of memories, merged entities excluded."""

    def __init__(self, postgres: PostgresConnection):
        self.postgres = postgres

    async def get_entities_for_items(
        self, item_ids: list[str], limit: int = 20
    ) -> list[EntityMention]:
        if not item_ids:
            return []

        rows = await self.postgres.execute_query(
            """
            SELECT e.id::text AS id, e.name, e.entity_type, COUNT(em.id) AS mention_count
            FROM entities e
            JOIN entity_mentions em ON em.entity_id = e.id
            WHERE em.memory_id = ANY($1::uuid[])
                AND e.is_merged = FALSE
            GROUP BY e.id, e.name, e.entity_type
            ORDER BY mention_count DESC, e.name ASC
            LIMIT $2
            """,
            item_ids,
            limit,
            fetch=True,
        )
        return [
            EntityMention(
                id=row["id"],
                label=row["name"],
                content=row["name"],
                entity_type=row["entity_type"],
                mention_count=int(row["mention_count"]),
            )
            for row in rows or []
        ]
