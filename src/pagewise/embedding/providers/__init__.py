from .gemini import GeminiEmbeddingProvider
from .hashing import HashingEmbeddingProvider
from .openai import OpenAIEmbeddingProvider

__all__ = [
    "GeminiEmbeddingProvider",
    "HashingEmbeddingProvider",
    "OpenAIEmbeddingProvider",
]
