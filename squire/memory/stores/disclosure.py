"""Append-only disclosure log backed by PostgreSQL."""

import json
import logging

from ...context.sources import DisclosureStore
from ...core.domain.context import DisclosureRecord
from ..database.postgres import PostgresConnection

logger = logging.getLogger(__name__)


class PostgresDisclosureStore(DisclosureStore):
    """Writes disclosure records to the ``disclosure_log`` table."""

    def __init__(self, postgres: PostgresConnection):
        self.postgres = postgres

    async def initialize_schema(self) -> None:
        """Create the disclosure log table if it does not exist."""
        await self.postgres.execute_query(
            """
            CREATE TABLE IF NOT EXISTS disclosure_log (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                conversation_id TEXT,
                profile_used TEXT NOT NULL,
                query_text TEXT,
                disclosed_memory_ids TEXT[] NOT NULL DEFAULT '{}',
                disclosed_memory_count INTEGER NOT NULL DEFAULT 0,
                scoring_weights JSONB NOT NULL,
                token_count INTEGER NOT NULL DEFAULT 0,
                format TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            CREATE INDEX IF NOT EXISTS idx_disclosure_log_conversation
                ON disclosure_log (conversation_id, created_at DESC);
            """
        )

    async def append(self, record: DisclosureRecord) -> str:
        disclosure_id = await self.postgres.fetch_value(
            """
            INSERT INTO disclosure_log (
                id, conversation_id, profile_used, query_text,
                disclosed_memory_ids, disclosed_memory_count,
                scoring_weights, token_count, format, created_at
            ) VALUES ($1::uuid, $2, $3, $4, $5, $6, $7::jsonb, $8, $9, $10)
            RETURNING id::text
            """,
            record.id,
            record.conversation_id,
            record.profile_name,
            record.query,
            record.disclosed_item_ids,
            record.item_count,
            json.dumps(record.scoring_weights.model_dump()),
            record.token_count,
            record.format.value,
            record.created_at,
        )
        return disclosure_id

    async def list_recent(
        self, limit: int, conversation_id: str | None = None
    ) -> list[DisclosureRecord]:
        sql = """
            SELECT id::text AS id, conversation_id, profile_used, query_text,
                   disclosed_memory_ids, disclosed_memory_count,
                   scoring_weights, token_count, format, created_at
            FROM disclosure_log
        """
        if conversation_id:
            rows = await self.postgres.execute_query(
                sql + " WHERE conversation_id = $1 ORDER BY created_at DESC LIMIT $2",
                conversation_id,
                limit,
                fetch=True,
            )
        else:
            rows = await self.postgres.execute_query(
                sql + " ORDER BY created_at DESC LIMIT $1",
                limit,
                fetch=True,
            )

        return [
            DisclosureRecord(
                id=row["id"],
                conversation_id=row["conversation_id"],
                profile_name=row["profile_used"],
                query=row["query_text"],
                disclosed_item_ids=list(row["disclosed_memory_ids"] or []),
                item_count=row["disclosed_memory_count"],
                scoring_weights=row["scoring_weights"],
                token_count=row["token_count"],
                format=row["format"],
                created_at=row["created_at"],
            )
            for row in rows or []
        ]
