"""Query embedding providers."""

from .base import EmbeddingError, EmbeddingProvider
from .openai_provider import OpenAIEmbeddingProvider, get_embedding_provider

__all__ = [
    "EmbeddingError",
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "get_embedding_provider",
]
