"""PostgreSQL database connection and utilities for memory stores."""

import logging
from typing import Any

import asyncpg

from ...core.config import settings

logger = logging.getLogger(__name__)


class PostgresConnection:
    """Async PostgreSQL connection manager for memory stores."""

    def __init__(self, dsn: str | None = None):
        """Initialize connection manager.

        Args:
            dsn: Connection URL, defaults to the configured PostgreSQL URL
        """
        self.dsn = dsn or settings.postgres_url
        self.pool: asyncpg.Pool | None = None

    async def __aenter__(self) -> "PostgresConnection":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        """Establish connection pool to PostgreSQL."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=30,
                server_settings={
                    # Short queries do not benefit from JIT
                    "jit": "off"
                },
            )

            async with self.pool.acquire() as conn:
                await conn.execute("SELECT 1")

            logger.info("Connected to PostgreSQL")
        except Exception as e:
            logger.error(f"Failed to connect to PostgreSQL: {str(e)}")
            raise

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Disconnected from PostgreSQL")

    async def execute_query(
        self,
        query: str,
        *args: Any,
        fetch: bool = False,
    ) -> list[asyncpg.Record] | None:
        """Execute a query with connection pool.

        Args:
            query: SQL query to execute
            *args: Query parameters
            fetch: Whether to fetch results

        Returns:
            Query results if fetch=True, None otherwise
        """
        if not self.pool:
            raise RuntimeError("Connection pool not initialized")

        async with self.pool.acquire() as conn:
            if fetch:
                return await conn.fetch(query, *args)
            await conn.execute(query, *args)
            return None

    async def fetch_value(self, query: str, *args: Any) -> Any:
        """Execute a query and return the first column of the first row."""
        if not self.pool:
            raise RuntimeError("Connection pool not initialized")

        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)


# Global connection instance
_postgres_connection: PostgresConnection | None = None


async def get_postgres_connection() -> PostgresConnection:
    """Get global PostgreSQL connection instance."""
    global _postgres_connection

    if _postgres_connection is None:
        _postgres_connection = PostgresConnection()
        await _postgres_connection.connect()

    return _postgres_connection


def vector_literal(embedding: list[float]) -> str:
    """Text form of an embedding accepted by pgvector's ``::vector`` cast."""
    return "[" + ",".join(str(value) for value in embedding) + "]"
