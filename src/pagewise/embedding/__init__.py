from .base import EmbeddingProvider
from .factory import create_embedding_provider
from .providers import (
    GeminiEmbeddingProvider,
    HashingEmbeddingProvider,
    OpenAIEmbeddingProvider,
)

__all__ = [
    "EmbeddingProvider",
    "create_embedding_provider",
    "GeminiEmbeddingProvider",
    "HashingEmbeddingProvider",
    "OpenAIEmbeddingProvider",
]
