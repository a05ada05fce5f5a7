"""OpenAI embedding provider implementation."""

import logging
from typing import Any

from openai import AsyncOpenAI, RateLimitError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import settings
from .base import EmbeddingError, EmbeddingProvider

logger = logging.getLogger(__name__)

_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeds queries with the OpenAI embeddings API."""

    def __init__(self, model: str | None = None, api_key: str | None = None):
        """Initialize OpenAI embedding provider.

        Args:
            model: OpenAI embedding model, defaults to the configured model
            api_key: API key, defaults to the configured key
        """
        self.model = model or settings.embedding_model
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.client: AsyncOpenAI | None = None

    @property
    def dimension(self) -> int:
        return _DIMENSIONS.get(self.model, 1536)

    @property
    def model_name(self) -> str:
        return f"openai:{self.model}"

    async def connect(self) -> None:
        """Open the API client used for the provider's lifetime."""
        if self.client is not None:
            return
        if not self.api_key:
            raise EmbeddingError("OpenAI API key not configured")

        self.client = AsyncOpenAI(api_key=self.api_key)

    async def close(self) -> None:
        """Close the API client."""
        if self.client:
            await self.client.close()
            self.client = None

    async def __aenter__(self) -> "OpenAIEmbeddingProvider":
        # Concurrent searches share one client; it stays open until close()
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        pass

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(RateLimitError),
        reraise=True,
    )
    async def _call_openai_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Call OpenAI embeddings API, retrying on rate limits."""
        if not self.client:
            raise EmbeddingError("Client not initialized - call connect() first")

        try:
            response = await self.client.embeddings.create(input=texts, model=self.model)
        except RateLimitError:
            logger.warning("Rate limit hit, retrying...")
            raise
        except Exception as e:
            logger.error(f"OpenAI embedding API failed: {str(e)}")
            raise EmbeddingError(f"OpenAI API error: {str(e)}") from e

        return [item.embedding for item in response.data]

    async def embed_text(self, text: str) -> list[float]:
        if not text or not text.strip():
            return [0.0] * self.dimension

        embeddings = await self._call_openai_embeddings([text.strip()])
        return embeddings[0]


def get_embedding_provider(model: str | None = None) -> EmbeddingProvider:
    """Get the configured embedding provider.

    Raises:
        EmbeddingError: If no OpenAI API key is configured
    """
    if not settings.openai_api_key:
        raise EmbeddingError(
            "OpenAI API key required but not configured. "
            "Set OPENAI_API_KEY environment variable."
        )
    return OpenAIEmbeddingProvider(model=model)
